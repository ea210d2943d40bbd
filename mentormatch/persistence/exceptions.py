"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError so callers can catch
every storage failure with a single except clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when database connection or initialization fails.

    Examples:
    - Invalid database URL
    - Database file not accessible
    - Session requested before init_database()
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised when a store constraint is violated.

    Examples:
    - A second match request for the same mentor/mentee pair
    - A second mentorship for the same match request or pair
    - A foreign key pointing at a missing user
    """

    pass
