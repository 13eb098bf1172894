"""Demo schedule for the Hamburg tenant.

Seven calls spread over the next nine days. Several are
mis-sized for their berth so the conflict views have something to show
(MAERSK EDINBURGH on CTA Berth 3, PACIFIC VOYAGER on RoRo Berth 2 and
IRON ORE CHAMPION on ECT Berth B).
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from berthboard.utils.dates import ensure_utc, utcnow

# (seq, direction, name, type, eta (day, hour), etd (day, hour), loa, draft, terminal, berth, operator, route)
_SAMPLE_CALLS = [
    ("001", "E", "MSC GENEVA", "Container", (1, 8), (2, 14), 280.0, 14.5,
     "terminal1", "berth1", "MSC Mediterranean Shipping", "Asia-Europe"),
    ("002", "W", "ATLANTIC STAR", "RoRo", (2, 6), (3, 18), 180.0, 7.2,
     "terminal3", "berth6", "Atlantic Shipping Lines", "North Atlantic"),
    ("003", "N", "BULK CARRIER OSLO", "Bulk", (3, 10), (5, 16), 260.0, 12.8,
     "terminal2", "berth4", "Nordic Bulk Shipping", "Scandinavia-Mediterranean"),
    ("004", "E", "MAERSK EDINBURGH", "Container", (4, 12), (5, 8), 330.0, 16.0,
     "terminal1", "berth3", "Maersk Line", "Far East-Europe"),
    ("005", "S", "PACIFIC VOYAGER", "RoRo", (6, 9), (7, 15), 320.0, 6.8,
     "terminal3", "berth7", "Pacific Ferry Lines", "Pacific Islands"),
    ("006", "W", "IRON ORE CHAMPION", "Bulk", (7, 14), (9, 10), 380.0, 18.2,
     "terminal2", "berth5", "Global Bulk Carriers", "Australia-Europe"),
    ("007", "E", "CMA CGM MARSEILLE", "Container", (8, 16), (9, 20), 240.0, 15.5,
     "terminal1", "berth2", "CMA CGM", "Mediterranean-Asia"),
]


def _at(base: datetime, days: int, hour: int) -> datetime:
    day = base + timedelta(days=days)
    return day.replace(hour=hour, minute=0, second=0, microsecond=0)


def generate_sample_vessels(now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """Return create-ready vessel drafts dated relative to ``now``."""
    now = ensure_utc(now) if now is not None else utcnow()
    drafts = []
    for (seq, direction, name, vessel_type, eta, etd, loa, draft,
         terminal_id, berth_id, operator, route) in _SAMPLE_CALLS:
        drafts.append({
            "voyage_number": f"{now.year}-{seq}-{direction}",
            "vessel_name": name,
            "vessel_type": vessel_type,
            "eta": _at(now, *eta),
            "etd": _at(now, *etd),
            "loa": loa,
            "draft": draft,
            "terminal_id": terminal_id,
            "berth_id": berth_id,
            "operator": operator,
            "route_info": route,
        })
    return drafts
