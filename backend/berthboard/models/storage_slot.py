"""StorageSlot entity: durable key/value slot holding a serialized collection."""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from berthboard.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StorageSlot(Base):
    __tablename__ = "storage_slots"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    # Whole collection as a JSON document; rewritten on every save
    value: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )
