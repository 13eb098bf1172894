"""Pydantic schemas for authentication, tenant switching and navigation."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from berthboard.schemas.reference import User


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    user: User
    token: str
    expires_at: datetime


class SwitchTenantRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1)


class NavigationItem(BaseModel):
    key: str
    label: str
    path: Optional[str] = None
    children: list["NavigationItem"] = Field(default_factory=list)
