"""Pydantic schemas for the berth timeline view."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class TimelineGroup(BaseModel):
    id: str
    content: str
    order: int = 0
    terminal_id: str


class TimelineItem(BaseModel):
    id: str
    content: str
    start: datetime
    end: datetime
    group: str
    class_name: str
    has_conflict: bool = False


class Timeline(BaseModel):
    groups: list[TimelineGroup] = Field(default_factory=list)
    items: list[TimelineItem] = Field(default_factory=list)
    # Calls in range with no berth (or an inactive one) cannot be drawn
    unassigned: list[str] = Field(default_factory=list)
