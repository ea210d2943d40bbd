"""Timestamp utilities for UTC handling.

All engine timestamps are timezone-aware UTC. Storage keeps them as
fixed-width ISO 8601 strings so that lexical ordering matches time ordering,
which lets expiry comparisons run inside SQL.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes are treated as UTC; aware ones are converted.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def add_days(dt: datetime, days: int) -> datetime:
    """Return ``dt`` shifted forward by a whole number of days."""
    return ensure_utc(dt) + timedelta(days=days)


def to_storage(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for database storage.

    Example:
        >>> to_storage(datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc))
        '2025-11-04T12:00:00.000000Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORAGE_FORMAT)


def from_storage(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp back into an aware UTC datetime.

    Accepts values with or without microseconds.
    """
    if not value:
        return None

    cleaned = value.rstrip("Z")
    try:
        dt = datetime.strptime(cleaned, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(cleaned, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO 8601 in UTC without microseconds.

    Used for log fields and notification payloads.
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return ""
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%SZ")
