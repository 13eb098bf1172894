"""Berth timeline projection: one row per active berth, one bar per call."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from berthboard.modules.conflict_detector import detect_all_conflicts, periods_overlap
from berthboard.schemas.reference import Berth
from berthboard.schemas.timeline import Timeline, TimelineGroup, TimelineItem
from berthboard.schemas.vessel import Vessel
from berthboard.utils.dates import ensure_utc


def item_class_name(vessel: Vessel, has_conflict: bool = False) -> str:
    classes = [
        "vessel-item",
        f"vessel-type-{vessel.vessel_type.value.lower()}",
        f"vessel-status-{vessel.status.value}",
    ]
    if has_conflict:
        classes.append("vessel-conflict")
    return " ".join(classes)


def build_timeline(
    vessels: Iterable[Vessel],
    berths: Iterable[Berth],
    *,
    terminal_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Timeline:
    """Build timeline groups and items.

    Groups are the active berths (of ``terminal_id`` when given) ordered
    by position. Items are the calls whose window overlaps [start, end)
    when a range is given; conflicts are computed over the whole
    schedule so a bar is flagged even if its counterpart is off-screen.
    """
    vessels = list(vessels)
    berths = list(berths)
    active = sorted(
        (b for b in berths if b.is_active and (terminal_id is None or b.terminal_id == terminal_id)),
        key=lambda b: (b.terminal_id, b.position or 0, b.name),
    )
    groups = [
        TimelineGroup(id=b.id, content=b.name, order=b.position or 0, terminal_id=b.terminal_id)
        for b in active
    ]
    group_ids = {g.id for g in groups}

    conflicted = {c.voyage_number for c in detect_all_conflicts(vessels, berths)}

    items: list[TimelineItem] = []
    unassigned: list[str] = []
    for v in sorted(vessels, key=lambda v: v.eta):
        if terminal_id and v.terminal_id != terminal_id:
            continue
        if start is not None or end is not None:
            lo = ensure_utc(start) if start is not None else v.eta
            hi = ensure_utc(end) if end is not None else v.etd
            if not periods_overlap(v.eta, v.etd, lo, hi):
                continue
        if v.berth_id not in group_ids:
            unassigned.append(v.voyage_number)
            continue
        has_conflict = v.voyage_number in conflicted
        items.append(TimelineItem(
            id=v.voyage_number,
            content=f"{v.vessel_name} ({v.voyage_number})",
            start=v.eta,
            end=v.etd,
            group=v.berth_id,
            class_name=item_class_name(v, has_conflict),
            has_conflict=has_conflict,
        ))
    return Timeline(groups=groups, items=items, unassigned=unassigned)
