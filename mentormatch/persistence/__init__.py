"""Persistence layer for database operations.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - UserRepository: profile reads and mentor capacity counters
    - MatchRequestRepository: suggestions and conditional status transitions
    - MentorshipRepository: confirmed mentorships
    - MatchAuditRepository: append-only audit log
    - NotificationRepository: in-app notifications

    # Exceptions
    - PersistenceError, DatabaseConnectionError, DataIntegrityError

Example usage:
    >>> from mentormatch.persistence import init_database, get_session, MatchRequestRepository
    >>> init_database("sqlite:///./data/mentormatch.db")
    >>> with get_session() as session:
    ...     repo = MatchRequestRepository(session)
    ...     match = repo.get_by_id("3f2a...")
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
)
from .repositories import (
    MatchAuditRepository,
    MatchRequestRepository,
    MentorshipRepository,
    NotificationRepository,
    UserRepository,
)

__all__ = [
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "UserRepository",
    "MatchRequestRepository",
    "MentorshipRepository",
    "MatchAuditRepository",
    "NotificationRepository",
    "PersistenceError",
    "DatabaseConnectionError",
    "DataIntegrityError",
]
