"""Result shapes returned by the validator, detector and store."""
from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from berthboard.models.base import ConflictTypeEnum, SeverityEnum

T = TypeVar("T")


class ValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)


class ConflictRecord(BaseModel):
    voyage_number: str
    conflict_type: ConflictTypeEnum
    conflicting_voyage_number: Optional[str] = None
    message: str
    severity: SeverityEnum


class StoreResult(BaseModel, Generic[T]):
    """Outcome of a store operation: ``{success, data|error}``.

    ``error_code`` is one of ``validation``, ``not_found`` or
    ``persistence`` on failure so the HTTP layer can pick a status code.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    errors: list[str] = Field(default_factory=list)
    error_code: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, message: Optional[str] = None) -> "StoreResult[T]":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, error_code: str, errors: Optional[list[str]] = None) -> "StoreResult[T]":
        return cls(success=False, error=error, error_code=error_code, errors=errors or [])
