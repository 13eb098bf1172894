"""Berth scheduling conflict detector.

Given a candidate vessel call and the committed vessel and berth
collections, reports why the reservation would be illegal:

  berth_overlap     another call on the same berth intersects [ETA, ETD)   error
  draft_violation   vessel draft exceeds the berth's maximum draft         error
  length_violation  vessel LOA exceeds the berth length                    warning

Occupancy windows are half-open, so a vessel departing at the exact
instant another arrives does not conflict with it.

Pure functions only: nothing here mutates its inputs, so the form layer
can call detect_conflicts speculatively on every edit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel

from berthboard.config import settings
from berthboard.models.base import ConflictTypeEnum, SeverityEnum
from berthboard.modules.vessel_validator import to_positive_float
from berthboard.schemas.reference import Berth
from berthboard.schemas.results import ConflictRecord
from berthboard.schemas.vessel import Vessel
from berthboard.utils.dates import try_parse_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Call:
    """Schedule-relevant view of a vessel or a partially filled draft."""

    voyage_number: str
    vessel_name: str
    berth_id: Optional[str]
    eta: Optional[datetime]
    etd: Optional[datetime]
    loa: Optional[float]
    draft: Optional[float]


def _as_call(vessel: Vessel | Mapping[str, Any] | BaseModel) -> _Call:
    if isinstance(vessel, Vessel):
        return _Call(
            voyage_number=vessel.voyage_number,
            vessel_name=vessel.vessel_name,
            berth_id=vessel.berth_id,
            eta=vessel.eta,
            etd=vessel.etd,
            loa=vessel.loa,
            draft=vessel.draft,
        )
    data = vessel.model_dump() if isinstance(vessel, BaseModel) else vessel
    berth_id = data.get("berth_id")
    return _Call(
        voyage_number=str(data.get("voyage_number") or "").strip(),
        vessel_name=str(data.get("vessel_name") or "").strip(),
        berth_id=str(berth_id).strip() if berth_id else None,
        eta=try_parse_utc(data.get("eta")),
        etd=try_parse_utc(data.get("etd")),
        loa=to_positive_float(data.get("loa")),
        draft=to_positive_float(data.get("draft")),
    )


def _fmt(value: float) -> str:
    return f"{value:g}"


def periods_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """True when [start1, end1) and [start2, end2) intersect.

    Touching endpoints (end1 == start2) do not overlap.
    """
    return start1 < end2 and start2 < end1


def _resolve_severity(length_severity: Optional[str]) -> SeverityEnum:
    raw = length_severity or settings.LENGTH_VIOLATION_SEVERITY
    try:
        return SeverityEnum(raw)
    except ValueError:
        logger.warning("Unknown LENGTH_VIOLATION_SEVERITY %r, using 'warning'", raw)
        return SeverityEnum.WARNING


def detect_conflicts(
    candidate: Vessel | Mapping[str, Any] | BaseModel,
    all_vessels: Iterable[Vessel],
    all_berths: Iterable[Berth],
    *,
    exclude_voyage_number: Optional[str] = None,
    length_severity: Optional[str] = None,
) -> list[ConflictRecord]:
    """Return the scheduling violations for a candidate vessel call.

    Overlap conflicts come first (one per intersecting vessel), followed
    by the draft and length checks. Returns an empty list if the
    candidate's berth is unknown; a dangling berth reference is a
    validation error, not a conflict.

    A committed Vessel never conflicts with its own stored record. Drafts
    are compared against every stored call, including one that shares
    their voyage number.

    exclude_voyage_number: prior voyage number of the record being
    edited; that stored record is skipped.
    """
    call = _as_call(candidate)
    if not call.berth_id:
        return []
    berth = next((b for b in all_berths if b.id == call.berth_id), None)
    if berth is None:
        return []

    conflicts: list[ConflictRecord] = []
    skip = {call.voyage_number} if isinstance(candidate, Vessel) else set()
    if exclude_voyage_number:
        skip.add(exclude_voyage_number)

    # ── Berth overlap ────────────────────────────────────────────────────────
    if call.eta is not None and call.etd is not None:
        for other in all_vessels:
            if other.voyage_number in skip or other.berth_id != call.berth_id:
                continue
            if periods_overlap(call.eta, call.etd, other.eta, other.etd):
                conflicts.append(ConflictRecord(
                    voyage_number=call.voyage_number,
                    conflict_type=ConflictTypeEnum.BERTH_OVERLAP,
                    conflicting_voyage_number=other.voyage_number,
                    message=f"Berth overlap with vessel {other.vessel_name} ({other.voyage_number})",
                    severity=SeverityEnum.ERROR,
                ))

    # ── Physical fit ─────────────────────────────────────────────────────────
    if berth.max_draft is not None and call.draft is not None and call.draft > berth.max_draft:
        conflicts.append(ConflictRecord(
            voyage_number=call.voyage_number,
            conflict_type=ConflictTypeEnum.DRAFT_VIOLATION,
            message=(
                f"Vessel draft ({_fmt(call.draft)}m) exceeds berth maximum "
                f"({_fmt(berth.max_draft)}m)"
            ),
            severity=SeverityEnum.ERROR,
        ))

    if call.loa is not None and call.loa > berth.length_m:
        conflicts.append(ConflictRecord(
            voyage_number=call.voyage_number,
            conflict_type=ConflictTypeEnum.LENGTH_VIOLATION,
            message=f"Vessel length ({_fmt(call.loa)}m) exceeds berth length ({_fmt(berth.length_m)}m)",
            severity=_resolve_severity(length_severity),
        ))

    return conflicts


def detect_all_conflicts(
    vessels: Iterable[Vessel],
    berths: Iterable[Berth],
    *,
    length_severity: Optional[str] = None,
) -> list[ConflictRecord]:
    """Scan the whole schedule. Each overlap is reported from both sides."""
    vessel_list = list(vessels)
    berth_list = list(berths)
    conflicts: list[ConflictRecord] = []
    for vessel in vessel_list:
        conflicts.extend(detect_conflicts(
            vessel, vessel_list, berth_list, length_severity=length_severity,
        ))
    return conflicts


def has_blocking_conflicts(conflicts: Iterable[ConflictRecord]) -> bool:
    """True if any conflict has error severity."""
    return any(c.severity == SeverityEnum.ERROR for c in conflicts)
