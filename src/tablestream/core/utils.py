"""Core utilities for tablestream."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """
    Get current UTC time as timezone-aware datetime.

    Returns:
        datetime: Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in UTC.

    Args:
        dt: A datetime object (may be naive or timezone-aware)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        # Assume naive datetime is UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse an ISO 8601 datetime string.

    Args:
        iso_string: ISO 8601 formatted datetime string

    Returns:
        Timezone-aware datetime object

    Raises:
        ValueError: If the string is not a valid ISO 8601 datetime
    """
    dt = datetime.fromisoformat(iso_string.strip().replace("Z", "+00:00"))
    return ensure_utc(dt)


def to_datetime(value: Any) -> datetime:
    """
    Coerce a column value into a UTC datetime.

    Accepts datetimes, dates and ISO 8601 strings.

    Raises:
        ValueError: If the value has no temporal interpretation
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    if isinstance(value, str):
        return parse_iso(value)
    raise ValueError(f"Not a temporal value: {value!r}")


__all__ = [
    "utc_now",
    "ensure_utc",
    "parse_iso",
    "to_datetime",
]
