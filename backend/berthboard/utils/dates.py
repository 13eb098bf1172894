"""Timestamp helpers shared by the validator, detector and metrics modules.

All schedule arithmetic happens on timezone-aware UTC datetimes. Naive
values (from forms or older JSON documents) are taken to be UTC.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_utc(value: Any) -> datetime:
    """Parse an ISO-8601 string, date or datetime into an aware UTC datetime.

    Accepts the trailing ``Z`` produced by browsers' ``toISOString()``.

    Raises:
        ValueError: if the value cannot be interpreted as a timestamp.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("empty timestamp")
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return ensure_utc(datetime.fromisoformat(text))
    raise ValueError(f"unsupported timestamp type: {type(value).__name__}")


def try_parse_utc(value: Any) -> datetime | None:
    """parse_utc that returns None instead of raising."""
    try:
        return parse_utc(value)
    except (TypeError, ValueError):
        return None


def hours_between(start: datetime, end: datetime) -> float:
    """Fractional hours from start to end (negative if end precedes start)."""
    return (end - start).total_seconds() / 3600


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """ISO string in UTC with a ``Z`` suffix, matching the browser format."""
    return ensure_utc(value).isoformat().replace("+00:00", "Z")
