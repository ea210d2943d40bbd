"""Matching engine errors.

Every error carries an HTTP-style status, a stable machine-readable code and
a human message. The engine never formats responses; callers translate these
with ``to_dict()``.
"""

from typing import Any, Dict, Optional


class MatchError(Exception):
    """Base class for matching errors."""

    status = 400
    code = "MATCH_ERROR"
    default_message = "Match operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "code": self.code, "message": self.message}


class MatchNotFound(MatchError):
    """The match does not exist or is not visible to the acting user."""

    status = 404
    code = "MATCH_NOT_FOUND"
    default_message = "Match not found"


class MentorNotAvailable(MatchError):
    status = 404
    code = "MENTOR_NOT_AVAILABLE"
    default_message = "Mentor not found or not approved"


class MatchNotActionable(MatchError):
    """The match is terminal, or changed underneath the caller."""

    status = 409
    code = "MATCH_NOT_ACTIONABLE"
    default_message = "Match is no longer actionable"


class MatchExpired(MatchError):
    status = 409
    code = "MATCH_EXPIRED"
    default_message = "Match suggestion expired"


class MentorCapacityReached(MatchError):
    status = 409
    code = "MENTOR_CAPACITY_REACHED"
    default_message = "Mentor has reached maximum mentee capacity"
