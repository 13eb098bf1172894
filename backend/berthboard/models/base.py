"""Shared declarative base and enums for all models."""
from __future__ import annotations

import enum
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class VesselTypeEnum(str, enum.Enum):
    CONTAINER = "Container"
    RORO = "RoRo"
    BULK = "Bulk"


class VesselStatusEnum(str, enum.Enum):
    PLANNED = "Planned"
    CONFIRMED = "Confirmed"
    AT_BERTH = "AtBerth"
    COMPLETED = "Completed"
    DELAYED = "Delayed"
    CANCELLED = "Cancelled"


class ConflictTypeEnum(str, enum.Enum):
    BERTH_OVERLAP = "berth_overlap"
    DRAFT_VIOLATION = "draft_violation"
    LENGTH_VIOLATION = "length_violation"


class SeverityEnum(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"


class UserRoleEnum(str, enum.Enum):
    ADMIN = "admin"
    PLANNER = "planner"
    VIEWER = "viewer"
    AGENT = "agent"


# Main progression of a vessel call. Delayed/Cancelled sit beside it.
STATUS_PROGRESSION: tuple[VesselStatusEnum, ...] = (
    VesselStatusEnum.PLANNED,
    VesselStatusEnum.CONFIRMED,
    VesselStatusEnum.AT_BERTH,
    VesselStatusEnum.COMPLETED,
)

TERMINAL_STATUSES: frozenset[VesselStatusEnum] = frozenset({
    VesselStatusEnum.COMPLETED,
    VesselStatusEnum.CANCELLED,
})
