"""Utility helpers shared across the engine."""

from .identifiers import new_record_id
from .timestamps import (
    add_days,
    ensure_utc,
    format_timestamp,
    from_storage,
    to_storage,
    utc_now,
)

__all__ = [
    "new_record_id",
    "utc_now",
    "ensure_utc",
    "add_days",
    "to_storage",
    "from_storage",
    "format_timestamp",
]
