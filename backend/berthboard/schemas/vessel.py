"""Pydantic schemas for the Vessel call record, used by FastAPI for request/response typing.

``Vessel`` is the committed record held by the store. Request schemas
accept strings or numbers for every field; field-level checks happen in
the vessel validator, which reports every problem at once.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, field_validator

from berthboard.models.base import VesselStatusEnum, VesselTypeEnum
from berthboard.utils.dates import ensure_utc

DraftValue = Union[float, str, datetime, None]


class Vessel(BaseModel):
    voyage_number: str
    vessel_name: str
    vessel_type: VesselTypeEnum
    operator: str = ""
    route_info: str = ""
    eta: datetime
    etd: datetime
    loa: float
    draft: float
    terminal_id: str
    berth_id: Optional[str] = None
    status: VesselStatusEnum = VesselStatusEnum.PLANNED
    created_at: datetime
    updated_at: datetime

    @field_validator("eta", "etd", "created_at", "updated_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class VesselDraftRequest(BaseModel):
    """Create/validate payload: a flat map of form fields."""

    voyage_number: Optional[str] = None
    vessel_name: Optional[str] = None
    vessel_type: Optional[str] = None
    operator: Optional[str] = None
    route_info: Optional[str] = None
    eta: DraftValue = None
    etd: DraftValue = None
    loa: DraftValue = None
    draft: DraftValue = None
    terminal_id: Optional[str] = None
    berth_id: Optional[str] = None


class VesselUpdateRequest(VesselDraftRequest):
    """Partial update: only fields present in the body are merged."""

    status: Optional[str] = None


class VesselRescheduleRequest(BaseModel):
    """Timeline drag-and-drop: new window and optionally a new berth."""

    eta: DraftValue = None
    etd: DraftValue = None
    berth_id: Optional[str] = None
    terminal_id: Optional[str] = None


class ConflictCheckRequest(VesselDraftRequest):
    # Prior voyage number of the record being edited, so it is not
    # reported as overlapping with itself.
    exclude_voyage_number: Optional[str] = None
