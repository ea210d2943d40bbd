"""Record identifier generation."""

import uuid


def new_record_id() -> str:
    """Return a fresh 32-character hex identifier for a stored record.

    Example:
        >>> len(new_record_id())
        32
    """
    return uuid.uuid4().hex
