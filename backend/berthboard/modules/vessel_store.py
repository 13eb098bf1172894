"""Vessel store: the authoritative vessel call collection.

One store is instantiated per application session and injected into
its consumers (API routes, CLI commands); there is no module-level
collection. Every mutation runs validation, commits to the in-memory
list and then rewrites the persistence slot wholesale.

The store does not run the conflict detector: conflicts are advisory
and left to the caller, so a vessel may be saved while it still
conflicts ("save now, resolve later").

Mutations are serialized with a re-entrant lock because FastAPI runs
sync endpoints on a threadpool; the read-modify-write in update/delete
must not interleave.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional

from pydantic import BaseModel, ValidationError

from berthboard.models.base import (
    STATUS_PROGRESSION,
    TERMINAL_STATUSES,
    VesselStatusEnum,
    VesselTypeEnum,
)
from berthboard.modules.conflict_detector import periods_overlap
from berthboard.modules.persistence import VesselSlot
from berthboard.modules.vessel_validator import validate_vessel
from berthboard.schemas.reference import Berth, Terminal
from berthboard.schemas.results import StoreResult
from berthboard.schemas.vessel import Vessel
from berthboard.utils.dates import parse_utc, utcnow

logger = logging.getLogger(__name__)

# Fields the caller may never set directly
_MANAGED_FIELDS = ("created_at", "updated_at")
# Optional fields a patch may clear with an explicit null
_CLEARABLE_FIELDS = ("berth_id", "operator", "route_info")


def can_transition(current: VesselStatusEnum, new: VesselStatusEnum) -> bool:
    """Check a status change against the vessel call lifecycle.

    Planned -> Confirmed -> AtBerth -> Completed, forward skips allowed.
    Delayed and Cancelled are reachable from any non-terminal state, and
    a Delayed call may resume at any non-terminal step of the main chain.
    Completed and Cancelled are terminal. Keeping the same status is
    always allowed.
    """
    if current == new:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if new in (VesselStatusEnum.DELAYED, VesselStatusEnum.CANCELLED):
        return True
    if current == VesselStatusEnum.DELAYED:
        return new in STATUS_PROGRESSION
    return STATUS_PROGRESSION.index(new) > STATUS_PROGRESSION.index(current)


def _as_dict(data: Mapping[str, Any] | BaseModel, *, exclude_unset: bool = False) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=exclude_unset)
    return dict(data)


def _clean(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "value"):
        value = value.value
    return str(value).strip()


class VesselStore:
    """Owns the vessel collection and its persistence slot.

    Args:
        slot: Persistence adapter (see ``berthboard.modules.persistence``).
        terminals / berths: Reference data; when given, terminal and
            berth references are validated on every write.
        clock: Returns "now" as an aware UTC datetime (tests pin it).
    """

    def __init__(
        self,
        slot: VesselSlot,
        *,
        terminals: Optional[Iterable[Terminal]] = None,
        berths: Optional[Iterable[Berth]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._slot = slot
        self._terminals = list(terminals) if terminals is not None else None
        self._berths = list(berths) if berths is not None else None
        self._clock = clock or utcnow
        self._lock = threading.RLock()
        self.load_error: Optional[str] = None
        self._vessels: list[Vessel] = self._load()

    # ── Loading / saving ────────────────────────────────────────────────────

    def _load(self) -> list[Vessel]:
        try:
            records = self._slot.load()
        except Exception as e:
            logger.exception("Could not load vessels from slot '%s', starting empty", self._slot.key)
            self.load_error = str(e)
            return []

        vessels: list[Vessel] = []
        for record in records:
            try:
                vessels.append(Vessel.model_validate(record))
            except ValidationError as e:
                logger.warning(
                    "Skipping unreadable vessel record %s: %s",
                    record.get("voyage_number") if isinstance(record, dict) else record, e,
                )
        logger.info("Loaded %d vessels from slot '%s'", len(vessels), self._slot.key)
        return vessels

    def _persist(self) -> None:
        self._slot.save_all([v.model_dump(mode="json") for v in self._vessels])

    def _commit(self, new_vessels: list[Vessel], action: str) -> Optional[str]:
        """Swap in the new collection and persist; roll back on failure.

        Returns an error message on failure, None on success.
        """
        previous = self._vessels
        self._vessels = new_vessels
        try:
            self._persist()
        except Exception as e:
            self._vessels = previous
            logger.exception("Failed to persist vessels after %s", action)
            return f"Failed to {action} vessel: {e}"
        return None

    # ── Reference data ──────────────────────────────────────────────────────

    @property
    def terminals(self) -> list[Terminal]:
        return list(self._terminals or [])

    @property
    def berths(self) -> list[Berth]:
        return list(self._berths or [])

    def _build_record(
        self,
        data: Mapping[str, Any],
        *,
        status: VesselStatusEnum,
        created_at: datetime,
        updated_at: datetime,
    ) -> Vessel:
        berth_id = _clean(data.get("berth_id"))
        return Vessel(
            voyage_number=_clean(data.get("voyage_number")),
            vessel_name=_clean(data.get("vessel_name")),
            vessel_type=VesselTypeEnum(_clean(data.get("vessel_type"))),
            operator=_clean(data.get("operator")),
            route_info=_clean(data.get("route_info")),
            eta=parse_utc(data.get("eta")),
            etd=parse_utc(data.get("etd")),
            loa=float(data.get("loa")),
            draft=float(data.get("draft")),
            terminal_id=_clean(data.get("terminal_id")),
            berth_id=berth_id or None,
            status=status,
            created_at=created_at,
            updated_at=updated_at,
        )

    # ── Commands ─────────────────────────────────────────────────────────────

    def create(self, draft: Mapping[str, Any] | BaseModel) -> StoreResult[Vessel]:
        """Validate and append a new vessel call with status Planned."""
        data = _as_dict(draft)
        data.pop("status", None)
        for field in _MANAGED_FIELDS:
            data.pop(field, None)

        with self._lock:
            validation = validate_vessel(
                data, self._vessels, is_update=False,
                terminals=self._terminals, berths=self._berths, now=self._clock(),
            )
            if not validation.is_valid:
                logger.warning("Create rejected for %s: %s", data.get("voyage_number"), validation.errors)
                return StoreResult.fail(
                    "Validation failed: " + ", ".join(validation.errors),
                    "validation",
                    validation.errors,
                )

            now = self._clock()
            vessel = self._build_record(
                data, status=VesselStatusEnum.PLANNED, created_at=now, updated_at=now,
            )
            error = self._commit(self._vessels + [vessel], "create")
            if error:
                return StoreResult.fail(error, "persistence")

        logger.info("Created vessel %s (%s)", vessel.voyage_number, vessel.vessel_name)
        return StoreResult.ok(vessel.model_copy())

    def update(self, voyage_number: str, patch: Mapping[str, Any] | BaseModel) -> StoreResult[Vessel]:
        """Merge a patch over an existing vessel and re-validate.

        The vessel keeps its own voyage number unless the patch supplies a
        new, still-unique one. Null values are ignored except for berth_id,
        operator and route_info, which they clear. ``created_at`` is
        preserved and the record moves to the end of the collection.
        """
        changes = {
            k: v for k, v in _as_dict(patch, exclude_unset=True).items()
            if v is not None or k in _CLEARABLE_FIELDS
        }
        for field in _MANAGED_FIELDS:
            changes.pop(field, None)

        with self._lock:
            existing = self._find(voyage_number)
            if existing is None:
                logger.warning("Update failed: vessel %s not found", voyage_number)
                return StoreResult.fail(f"Vessel with voyage number {voyage_number} not found", "not_found")

            merged = {**existing.model_dump(), **changes}

            validation = validate_vessel(
                merged, self._vessels, is_update=True, exclude_voyage_number=voyage_number,
                terminals=self._terminals, berths=self._berths, now=self._clock(),
            )
            errors = list(validation.errors)
            new_status = existing.status
            if "status" in changes and not any(e.startswith("Status must be") for e in errors):
                new_status = VesselStatusEnum(_clean(changes["status"]))
                if not can_transition(existing.status, new_status):
                    errors.append(
                        f"Invalid status transition from {existing.status.value} to {new_status.value}"
                    )
            if errors:
                logger.warning("Update rejected for %s: %s", voyage_number, errors)
                return StoreResult.fail("Validation failed: " + ", ".join(errors), "validation", errors)

            updated = self._build_record(
                merged, status=new_status, created_at=existing.created_at, updated_at=self._clock(),
            )
            remaining = [v for v in self._vessels if v.voyage_number != voyage_number]
            error = self._commit(remaining + [updated], "update")
            if error:
                return StoreResult.fail(error, "persistence")

        logger.info("Updated vessel %s -> %s", voyage_number, updated.voyage_number)
        return StoreResult.ok(updated.model_copy())

    def delete(self, voyage_number: str) -> StoreResult[None]:
        """Hard-delete a vessel by voyage number."""
        with self._lock:
            remaining = [v for v in self._vessels if v.voyage_number != voyage_number]
            if len(remaining) == len(self._vessels):
                return StoreResult.fail(f"Vessel with voyage number {voyage_number} not found", "not_found")
            error = self._commit(remaining, "delete")
            if error:
                return StoreResult.fail(error, "persistence")

        logger.info("Deleted vessel %s", voyage_number)
        return StoreResult.ok(message="Vessel deleted successfully")

    def clear(self) -> StoreResult[None]:
        """Remove every vessel (reset / sample-data reload)."""
        with self._lock:
            count = len(self._vessels)
            error = self._commit([], "clear")
            if error:
                return StoreResult.fail(error, "persistence")

        logger.info("Cleared %d vessels", count)
        return StoreResult.ok(message="All vessels cleared successfully")

    # ── Queries ──────────────────────────────────────────────────────────────

    def _find(self, voyage_number: str) -> Optional[Vessel]:
        return next((v for v in self._vessels if v.voyage_number == voyage_number), None)

    def get_all(self) -> list[Vessel]:
        with self._lock:
            return [v.model_copy() for v in self._vessels]

    def get_by_voyage_number(self, voyage_number: str) -> Optional[Vessel]:
        with self._lock:
            vessel = self._find(voyage_number)
            return vessel.model_copy() if vessel else None

    def filter_vessels(
        self,
        *,
        terminal_id: Optional[str] = None,
        berth_id: Optional[str] = None,
        vessel_type: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> list[Vessel]:
        """Filter the collection; a date range keeps vessels whose window overlaps it."""
        vessels = self.get_all()
        if terminal_id:
            vessels = [v for v in vessels if v.terminal_id == terminal_id]
        if berth_id:
            vessels = [v for v in vessels if v.berth_id == berth_id]
        if vessel_type:
            vessels = [v for v in vessels if v.vessel_type.value == vessel_type]
        if status:
            vessels = [v for v in vessels if v.status.value == status]
        if date_from or date_to:
            start = parse_utc(date_from) if date_from else datetime.min.replace(tzinfo=timezone.utc)
            end = parse_utc(date_to) if date_to else datetime.max.replace(tzinfo=timezone.utc)
            vessels = [v for v in vessels if periods_overlap(v.eta, v.etd, start, end)]
        if search:
            term = search.strip().casefold()
            vessels = [
                v for v in vessels
                if term in v.voyage_number.casefold()
                or term in v.vessel_name.casefold()
                or term in v.operator.casefold()
            ]
        return vessels

    def get_stats(self) -> dict[str, Any]:
        """Totals by vessel type, status and terminal."""
        by_type: dict[str, int] = {}
        by_status: dict[str, int] = {}
        by_terminal: dict[str, int] = {}
        vessels = self.get_all()
        for v in vessels:
            by_type[v.vessel_type.value] = by_type.get(v.vessel_type.value, 0) + 1
            by_status[v.status.value] = by_status.get(v.status.value, 0) + 1
            by_terminal[v.terminal_id] = by_terminal.get(v.terminal_id, 0) + 1
        return {
            "total": len(vessels),
            "by_type": by_type,
            "by_status": by_status,
            "by_terminal": by_terminal,
        }


def sort_by_eta(vessels: Iterable[Vessel]) -> list[Vessel]:
    return sorted(vessels, key=lambda v: v.eta)
