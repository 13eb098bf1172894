"""Pydantic schemas for dashboard metrics."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from berthboard.utils.dates import ensure_utc


class MetricsWindow(BaseModel):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def start_before_end(self) -> "MetricsWindow":
        if self.end <= self.start:
            raise ValueError("window end must be after window start")
        return self


class DailyThroughput(BaseModel):
    date: str
    count: int


class DashboardMetrics(BaseModel):
    total_vessels: int
    upcoming_arrivals: int
    berth_utilization: float
    operational_delays: int
    vessels_by_type: dict[str, int]
    daily_throughput: list[DailyThroughput]
    average_turnaround_hours: Optional[float] = None
