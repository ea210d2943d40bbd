"""Scoped logging context.

Fields pushed here (match_id, mentor_id, run_id, ...) are merged into every
log record emitted inside the scope by ``ContextualFilter``. Backed by
contextvars so nested scopes restore cleanly.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("mentormatch_log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the active logging context."""
    return dict(LogContextVar.get())


def push_log_context(**fields) -> Token:
    """Merge ``fields`` into the active context.

    Returns:
        Token for ``pop_log_context``
    """
    return LogContextVar.set({**LogContextVar.get(), **fields})


def pop_log_context(token: Token) -> None:
    """Restore the context captured by ``push_log_context``."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop every context field. Intended for tests."""
    LogContextVar.set({})


class log_context:
    """Context manager form of push/pop.

    Example:
        >>> with log_context(match_id="a1b2", mentor_id="m-1"):
        ...     logger.info("Mentor accepted match")
    """

    def __init__(self, **fields):
        self.fields = fields
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
        return False
