"""Dashboard metrics derived from the vessel collection.

Everything here is recomputed on demand from a snapshot; nothing is
persisted. Utilization is measured in berth-hours:

    occupied berth-hours / (berth count x window hours) x 100

where each vessel contributes only the part of [ETA, ETD) that falls
inside the window. Overlapping (conflicting) calls can push the raw
ratio past 100, so the result is clamped to [0, 100].
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from berthboard.config import settings
from berthboard.models.base import VesselStatusEnum, VesselTypeEnum
from berthboard.schemas.metrics import DailyThroughput, DashboardMetrics, MetricsWindow
from berthboard.schemas.reference import Berth
from berthboard.schemas.vessel import Vessel
from berthboard.utils.dates import ensure_utc, hours_between, utcnow

logger = logging.getLogger(__name__)


def calculate_turnaround_hours(vessel: Vessel) -> float:
    """Hours the vessel is scheduled alongside (ETD - ETA)."""
    return hours_between(vessel.eta, vessel.etd)


def occupied_hours_in_window(vessel: Vessel, start: datetime, end: datetime) -> float:
    """Hours of the vessel's [ETA, ETD) clipped to [start, end); 0 if disjoint."""
    clipped_start = max(vessel.eta, start)
    clipped_end = min(vessel.etd, end)
    if clipped_end <= clipped_start:
        return 0.0
    return hours_between(clipped_start, clipped_end)


def calculate_berth_utilization(
    vessels: Iterable[Vessel],
    berths: Iterable[Berth],
    window: MetricsWindow,
) -> float:
    """Percentage of available berth-time occupied inside the window, in [0, 100]."""
    berth_count = len(list(berths))
    window_hours = hours_between(window.start, window.end)
    if berth_count == 0 or window_hours <= 0:
        return 0.0

    start, end = ensure_utc(window.start), ensure_utc(window.end)
    occupied = sum(occupied_hours_in_window(v, start, end) for v in vessels)
    utilization = occupied / (berth_count * window_hours) * 100
    return round(min(max(utilization, 0.0), 100.0), 2)


def get_upcoming_arrivals(
    vessels: Iterable[Vessel],
    *,
    now: Optional[datetime] = None,
    hours_ahead: Optional[int] = None,
) -> list[Vessel]:
    """Vessels whose ETA falls strictly inside (now, now + hours_ahead)."""
    now = ensure_utc(now) if now else utcnow()
    cutoff = now + timedelta(hours=hours_ahead or settings.UPCOMING_ARRIVALS_HOURS)
    return [v for v in vessels if now < v.eta < cutoff]


def calculate_daily_throughput(
    vessels: Iterable[Vessel],
    *,
    today: date,
    days: int,
) -> list[DailyThroughput]:
    """Per-day vessel counts for the trailing ``days`` days ending on ``today``.

    Vessels are bucketed by the UTC calendar day of their ETA.
    """
    counts = Counter(v.eta.date() for v in vessels)
    series = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        series.append(DailyThroughput(date=day.isoformat(), count=counts.get(day, 0)))
    return series


def compute_metrics(
    vessels: Iterable[Vessel],
    berths: Iterable[Berth],
    window: MetricsWindow,
    *,
    now: Optional[datetime] = None,
    throughput_days: Optional[int] = None,
    upcoming_hours: Optional[int] = None,
) -> DashboardMetrics:
    """Compute the dashboard metrics for a vessel snapshot.

    Args:
        vessels: Vessel snapshot (typically ``store.get_all()``).
        berths: Berths counted as available capacity.
        window: Utilization window.
        now: Clock override for upcoming arrivals and throughput.
        throughput_days: Trailing days in ``daily_throughput``
            (default settings.THROUGHPUT_DAYS).
        upcoming_hours: Look-ahead for ``upcoming_arrivals``
            (default settings.UPCOMING_ARRIVALS_HOURS).
    """
    vessel_list = list(vessels)
    berth_list = list(berths)
    now = ensure_utc(now) if now else utcnow()

    by_type = {t.value: 0 for t in VesselTypeEnum}
    for v in vessel_list:
        by_type[v.vessel_type.value] += 1

    turnarounds = [calculate_turnaround_hours(v) for v in vessel_list]
    average_turnaround = round(sum(turnarounds) / len(turnarounds), 2) if turnarounds else None

    metrics = DashboardMetrics(
        total_vessels=len(vessel_list),
        upcoming_arrivals=len(get_upcoming_arrivals(vessel_list, now=now, hours_ahead=upcoming_hours)),
        berth_utilization=calculate_berth_utilization(vessel_list, berth_list, window),
        operational_delays=sum(1 for v in vessel_list if v.status == VesselStatusEnum.DELAYED),
        vessels_by_type=by_type,
        daily_throughput=calculate_daily_throughput(
            vessel_list,
            today=now.date(),
            days=throughput_days or settings.THROUGHPUT_DAYS,
        ),
        average_turnaround_hours=average_turnaround,
    )
    logger.debug(
        "Metrics over %d vessels / %d berths: utilization=%.2f%%",
        metrics.total_vessels, len(berth_list), metrics.berth_utilization,
    )
    return metrics
