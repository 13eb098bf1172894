"""Reference data loader: tenants, users, terminals and berths from YAML.

Reference data is static for the lifetime of the process: loaded once,
then used as read-only lookup tables keyed by identifier.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from berthboard.config import settings
from berthboard.schemas.reference import Berth, Tenant, Terminal, UserRecord

logger = logging.getLogger(__name__)

_REPO_ROOT = Path(__file__).resolve().parents[3]

_REFERENCE_DATA: Optional["ReferenceData"] = None


@dataclass
class ReferenceData:
    tenants: list[Tenant] = field(default_factory=list)
    users: list[UserRecord] = field(default_factory=list)
    terminals: list[Terminal] = field(default_factory=list)
    berths: list[Berth] = field(default_factory=list)

    def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return next((t for t in self.tenants if t.id == tenant_id), None)

    def get_terminal(self, terminal_id: str) -> Optional[Terminal]:
        return next((t for t in self.terminals if t.id == terminal_id), None)

    def get_berth(self, berth_id: str) -> Optional[Berth]:
        return next((b for b in self.berths if b.id == berth_id), None)

    def terminals_for_tenant(self, tenant_id: Optional[str]) -> list[Terminal]:
        if tenant_id is None:
            return list(self.terminals)
        return [t for t in self.terminals if t.tenant_id == tenant_id]

    def berths_for_terminal(self, terminal_id: Optional[str] = None, *, active_only: bool = False) -> list[Berth]:
        """Berths ordered by terminal, then display position."""
        berths = [b for b in self.berths if terminal_id is None or b.terminal_id == terminal_id]
        if active_only:
            berths = [b for b in berths if b.is_active]
        return sorted(berths, key=lambda b: (b.terminal_id, b.position or 0, b.name))

    def berths_for_tenant(self, tenant_id: Optional[str], *, active_only: bool = False) -> list[Berth]:
        terminal_ids = {t.id for t in self.terminals_for_tenant(tenant_id)}
        return [b for b in self.berths_for_terminal(active_only=active_only) if b.terminal_id in terminal_ids]


def _resolve_path(path: str | Path | None) -> Path:
    candidate = Path(path or settings.REFERENCE_DATA_CONFIG)
    if candidate.is_absolute():
        return candidate
    # config/ sits at the repo root, beside backend/
    rooted = _REPO_ROOT / candidate
    return rooted if rooted.exists() else candidate


def _parse_section(raw: dict[str, Any], name: str, model: type) -> list:
    items = []
    for entry in raw.get(name) or []:
        try:
            items.append(model.model_validate(entry))
        except ValidationError as e:
            raise ValueError(f"Invalid {name} entry {entry.get('id', '?')!r}: {e}") from e
    return items


def load_reference_data(path: str | Path | None = None) -> ReferenceData:
    """Read and validate the reference YAML.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if an entry is malformed or berths point at unknown terminals.
    """
    config_path = _resolve_path(path)
    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    data = ReferenceData(
        tenants=_parse_section(raw, "tenants", Tenant),
        users=_parse_section(raw, "users", UserRecord),
        terminals=_parse_section(raw, "terminals", Terminal),
        berths=_parse_section(raw, "berths", Berth),
    )

    terminal_ids = {t.id for t in data.terminals}
    dangling = [b.id for b in data.berths if b.terminal_id not in terminal_ids]
    if dangling:
        raise ValueError(f"Berths reference unknown terminals: {dangling}")

    logger.info(
        "Loaded reference data from %s: %d tenants, %d terminals, %d berths",
        config_path, len(data.tenants), len(data.terminals), len(data.berths),
    )
    return data


def get_reference_data() -> ReferenceData:
    """Cached reference data for the running process."""
    global _REFERENCE_DATA
    if _REFERENCE_DATA is None:
        _REFERENCE_DATA = load_reference_data()
    return _REFERENCE_DATA


def reload_reference_data() -> ReferenceData:
    """Force-reload reference data from disk."""
    global _REFERENCE_DATA
    _REFERENCE_DATA = None
    return get_reference_data()
