"""Field-level validation for vessel call drafts.

Checks a single draft (a flat map of form fields) for required fields,
voyage-number format and uniqueness, numeric ranges and ETA/ETD
ordering. Every failing check contributes a message: callers render the
full list next to the form, so nothing short-circuits.

Cross-record scheduling legality (berth overlap, draft and length fit)
is the conflict detector's concern, not this module's.
"""
from __future__ import annotations

import logging
import math
import random
import re
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel

from berthboard.models.base import VesselStatusEnum, VesselTypeEnum
from berthboard.schemas.reference import Berth, Terminal
from berthboard.schemas.results import ValidationResult
from berthboard.schemas.vessel import Vessel
from berthboard.utils.dates import try_parse_utc, utcnow

logger = logging.getLogger(__name__)

# NNNN-NNN-D: 4-digit year, 3-digit sequence, direction code (ASCII digits only)
VOYAGE_NUMBER_PATTERN = re.compile(r"[0-9]{4}-[0-9]{3}-[EWNS]")
VOYAGE_DIRECTIONS = "EWNS"

VOYAGE_FORMAT_MESSAGE = "Voyage number must follow format YYYY-###-[E|W|N|S] (e.g., 2024-001-E)"

_VESSEL_TYPES = [t.value for t in VesselTypeEnum]
_STATUSES = [s.value for s in VesselStatusEnum]


def is_valid_voyage_number(voyage_number: Any) -> bool:
    """Check the bit-exact voyage number format."""
    if not isinstance(voyage_number, str):
        return False
    return VOYAGE_NUMBER_PATTERN.fullmatch(voyage_number) is not None


def generate_voyage_number(
    year: Optional[int] = None,
    *,
    taken: Iterable[str] = (),
    rng: Optional[random.Random] = None,
) -> str:
    """Random voyage number for the given year (default: current UTC year).

    Numbers in ``taken`` are avoided.

    Raises:
        ValueError: if the year is not four digits or every number is taken.
    """
    year = utcnow().year if year is None else year
    if not 1000 <= year <= 9999:
        raise ValueError(f"Year must have four digits, got {year}")
    rng = rng or random.Random()
    used = set(taken)

    for _ in range(100):
        candidate = f"{year}-{rng.randint(1, 999):03d}-{rng.choice(VOYAGE_DIRECTIONS)}"
        if candidate not in used:
            return candidate
    free = [
        f"{year}-{seq:03d}-{d}"
        for seq in range(1, 1000) for d in VOYAGE_DIRECTIONS
        if f"{year}-{seq:03d}-{d}" not in used
    ]
    if not free:
        raise ValueError(f"No voyage numbers left for {year}")
    return rng.choice(free)


def _as_mapping(draft: Any) -> Mapping[str, Any]:
    if isinstance(draft, BaseModel):
        return draft.model_dump()
    return draft


def _text(value: Any) -> str:
    """Trimmed string form of a form value ('' for missing)."""
    if value is None:
        return ""
    if hasattr(value, "value"):  # enum members
        value = value.value
    return str(value).strip()


def _is_blank(value: Any) -> bool:
    return _text(value) == ""


def to_positive_float(value: Any) -> Optional[float]:
    """Return value as a float if it is a finite number > 0, else None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number) or number <= 0:
        return None
    return number


def _index_by_id(items: Iterable[Any] | Mapping[str, Any] | None) -> Optional[dict[str, Any]]:
    if items is None:
        return None
    if isinstance(items, Mapping):
        return dict(items)
    return {item.id: item for item in items}


def validate_vessel(
    draft: Mapping[str, Any] | BaseModel,
    existing_vessels: Iterable[Vessel],
    *,
    is_update: bool = False,
    exclude_voyage_number: Optional[str] = None,
    terminals: Iterable[Terminal] | Mapping[str, Terminal] | None = None,
    berths: Iterable[Berth] | Mapping[str, Berth] | None = None,
    now: Optional[datetime] = None,
) -> ValidationResult:
    """Validate a vessel draft against the current collection snapshot.

    Args:
        draft: Flat field map (or pydantic model) as produced by a form.
        existing_vessels: Committed vessels used for the uniqueness check.
        is_update: True when re-validating a merged update.
        exclude_voyage_number: The record's own prior voyage number on
            update, so a vessel can keep its number.
        terminals / berths: Optional reference data. When supplied, the
            terminal and berth references are checked too.
        now: Clock override for the past-ETA warning.

    Returns:
        ValidationResult with ``is_valid`` and the ordered error list.
    """
    data = _as_mapping(draft)
    errors: list[str] = []

    # ── Voyage number ────────────────────────────────────────────────────────
    voyage_number = _text(data.get("voyage_number"))
    if not voyage_number:
        errors.append("Voyage number is required")
    elif not is_valid_voyage_number(voyage_number):
        errors.append(VOYAGE_FORMAT_MESSAGE)
    else:
        excluded = exclude_voyage_number if is_update else None
        taken = any(
            v.voyage_number == voyage_number and v.voyage_number != excluded
            for v in existing_vessels
        )
        if taken:
            errors.append("Voyage number already exists")

    # ── Required fields ──────────────────────────────────────────────────────
    if _is_blank(data.get("vessel_name")):
        errors.append("Vessel name is required")

    eta = etd = None
    if _is_blank(data.get("eta")):
        errors.append("ETA is required")
    else:
        eta = try_parse_utc(data.get("eta"))
        if eta is None:
            errors.append("ETA must be a valid date/time")

    if _is_blank(data.get("etd")):
        errors.append("ETD is required")
    else:
        etd = try_parse_utc(data.get("etd"))
        if etd is None:
            errors.append("ETD must be a valid date/time")

    terminal_id = _text(data.get("terminal_id"))
    if not terminal_id:
        errors.append("Terminal selection is required")

    vessel_type = _text(data.get("vessel_type"))
    if not vessel_type:
        errors.append("Vessel type is required")
    elif vessel_type not in _VESSEL_TYPES:
        errors.append(f"Vessel type must be one of: {', '.join(_VESSEL_TYPES)}")

    # ── Numeric ranges ───────────────────────────────────────────────────────
    if to_positive_float(data.get("loa")) is None:
        errors.append("LOA must be a positive number")

    if to_positive_float(data.get("draft")) is None:
        errors.append("Draft must be a positive number")

    # ── Date ordering ────────────────────────────────────────────────────────
    if eta is not None and etd is not None:
        if eta >= etd:
            errors.append("ETA must be before ETD")
        if eta < (now or utcnow()):
            logger.warning("ETA is in the past for voyage %s", voyage_number or "<unset>")

    # ── Status (updates carry it; creates default to Planned) ───────────────
    status = data.get("status")
    if status is not None and _text(status) not in _STATUSES:
        errors.append(f"Status must be one of: {', '.join(_STATUSES)}")

    # ── Reference data ───────────────────────────────────────────────────────
    terminal_index = _index_by_id(terminals)
    if terminal_index is not None and terminal_id and terminal_id not in terminal_index:
        errors.append(f"Terminal {terminal_id} does not exist")

    berth_index = _index_by_id(berths)
    berth_id = _text(data.get("berth_id"))
    if berth_index is not None and berth_id:
        berth = berth_index.get(berth_id)
        if berth is None:
            errors.append(f"Berth {berth_id} does not exist")
        elif not berth.is_active:
            errors.append(f"Berth {berth.name} is not active")
        elif terminal_id and berth.terminal_id != terminal_id:
            errors.append(f"Berth {berth.name} does not belong to terminal {terminal_id}")

    if errors:
        logger.debug("Vessel draft %s failed validation: %s", voyage_number or "<unset>", errors)
    return ValidationResult(is_valid=not errors, errors=errors)
