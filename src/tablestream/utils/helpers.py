"""Helper utilities for tablestream."""

from __future__ import annotations

import re
import uuid
from datetime import timedelta


def generate_id(prefix: str = "") -> str:
    """Generate a unique identifier."""
    uid = str(uuid.uuid4())[:8]
    if prefix:
        return f"{prefix}_{uid}"
    return uid


def format_size(bytes_size: float) -> str:
    """
    Format bytes to human-readable size.

    Examples:
        format_size(1048576) -> "1.00 MB"
        format_size(1536) -> "1.50 KB"
    """
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if abs(bytes_size) < 1024.0:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.2f} PB"


def parse_duration(duration_str: str) -> timedelta:
    """
    Parse a duration string to timedelta.

    Examples:
        parse_duration("1 hour") -> timedelta(hours=1)
        parse_duration("30 minutes") -> timedelta(minutes=30)
        parse_duration("45s") -> timedelta(seconds=45)
    """
    pattern = r"^(\d+(?:\.\d+)?)\s*(second|minute|hour|day|week|s|m|h|d)s?$"
    match = re.match(pattern, duration_str.lower().strip())

    if not match:
        raise ValueError(f"Invalid duration format: {duration_str}")

    value = float(match.group(1))
    unit = match.group(2)

    unit_mapping = {
        "second": "seconds",
        "s": "seconds",
        "minute": "minutes",
        "m": "minutes",
        "hour": "hours",
        "h": "hours",
        "day": "days",
        "d": "days",
        "week": "weeks",
    }

    return timedelta(**{unit_mapping[unit]: value})
