"""Pydantic schemas for reference data: tenants, users, terminals and berths."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from berthboard.models.base import UserRoleEnum


class Tenant(BaseModel):
    id: str
    name: str
    logo: Optional[str] = None
    primary_color: Optional[str] = None


class User(BaseModel):
    id: str
    email: str
    name: str
    role: UserRoleEnum
    tenant_id: str
    job_title: Optional[str] = None
    organization_name: Optional[str] = None
    available_tenants: list[str] = Field(default_factory=list)


class UserRecord(User):
    """User as held in reference data, including credentials."""

    password_hash: str

    def public(self) -> User:
        return User(**self.model_dump(exclude={"password_hash"}))


class Terminal(BaseModel):
    id: str
    name: str
    tenant_id: str
    location: Optional[str] = None
    is_active: bool = True


class Berth(BaseModel):
    id: str
    name: str
    terminal_id: str
    length_m: float
    max_draft: Optional[float] = None
    is_active: bool = True
    position: Optional[int] = None

    @field_validator("length_m")
    @classmethod
    def length_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Berth length must be greater than 0")
        return v

    @field_validator("max_draft")
    @classmethod
    def max_draft_must_be_positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("Berth max draft must be greater than 0")
        return v
