"""Read-side operations over match requests, mentorships and capacity."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from mentormatch.config.models import MatchingConfig
from mentormatch.domain.models import MatchRequest, MatchStatus, Mentorship, UserRole
from mentormatch.persistence.database import get_session
from mentormatch.persistence.repositories import (
    MatchRequestRepository,
    MentorshipRepository,
    UserRepository,
)
from mentormatch.utils.timestamps import utc_now

from .capacity import mentor_capacity
from .exceptions import MatchNotFound, MentorNotAvailable

DEFAULT_LIST_LIMIT = 10


@dataclass(frozen=True)
class CapacitySummary:
    capacity: int
    active_mentees: int
    remaining_slots: int


@dataclass(frozen=True)
class MenteeQueueSummary:
    """How many open suggestions are waiting on each side."""

    awaiting_mentee: int
    awaiting_mentor: int


def summarize_mentee_queue(suggestions: Iterable[MatchRequest]) -> MenteeQueueSummary:
    awaiting_mentee = awaiting_mentor = 0
    for match in suggestions:
        if match.status == MatchStatus.MENTOR_ACCEPTED:
            awaiting_mentee += 1
        elif match.status == MatchStatus.MENTEE_ACCEPTED:
            awaiting_mentor += 1
    return MenteeQueueSummary(awaiting_mentee=awaiting_mentee, awaiting_mentor=awaiting_mentor)


class MatchQueryService:
    """Listing and summary queries used by the HTTP layer."""

    def __init__(
        self,
        matching_config: Optional[MatchingConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = matching_config or MatchingConfig()
        self._clock = clock

    def clamp_limit(self, limit: Optional[int]) -> int:
        """Clamp a requested page size to [1, max_list_limit]; 0 or None means 10."""
        return max(1, min(limit or DEFAULT_LIST_LIMIT, self.config.max_list_limit))

    def list_suggestions_for_mentor(
        self, mentor_id: str, limit: Optional[int] = DEFAULT_LIST_LIMIT
    ) -> List[MatchRequest]:
        """Open, unexpired suggestions for a mentor, best score then most recent first."""
        with get_session() as session:
            return MatchRequestRepository(session).list_open_for_mentor(
                mentor_id, self._clock(), self.clamp_limit(limit)
            )

    def list_suggestions_for_mentee(
        self, mentee_id: str, limit: Optional[int] = DEFAULT_LIST_LIMIT
    ) -> List[MatchRequest]:
        with get_session() as session:
            return MatchRequestRepository(session).list_open_for_mentee(
                mentee_id, self._clock(), self.clamp_limit(limit)
            )

    def get_suggestion_detail(self, mentor_id: str, match_id: str) -> MatchRequest:
        """Fetch one of the mentor's match requests.

        Raises:
            MatchNotFound: If the request is missing or belongs to another mentor
        """
        with get_session() as session:
            match = MatchRequestRepository(session).get_scoped(match_id, mentor_id=mentor_id)
        if match is None:
            raise MatchNotFound()
        return match

    def list_mentor_matches(self, mentor_id: str) -> List[MatchRequest]:
        with get_session() as session:
            return MatchRequestRepository(session).list_for_mentor(mentor_id)

    def list_mentee_matches(self, mentee_id: str) -> List[MatchRequest]:
        with get_session() as session:
            return MatchRequestRepository(session).list_for_mentee(mentee_id)

    def list_mentorships_for_mentor(self, mentor_id: str) -> List[Mentorship]:
        with get_session() as session:
            return MentorshipRepository(session).list_for_mentor(mentor_id)

    def list_mentorships_for_mentee(self, mentee_id: str) -> List[Mentorship]:
        with get_session() as session:
            return MentorshipRepository(session).list_for_mentee(mentee_id)

    def get_capacity_summary(self, mentor_id: str) -> CapacitySummary:
        """Capacity, active mentees and free slots for a mentor.

        Raises:
            MentorNotAvailable: If the user is missing or not a mentor
        """
        with get_session() as session:
            mentor = UserRepository(session).get_by_id(mentor_id)
        if mentor is None or mentor.role != UserRole.MENTOR:
            raise MentorNotAvailable()

        status = mentor_capacity(mentor)
        return CapacitySummary(
            capacity=status.capacity,
            active_mentees=status.active,
            remaining_slots=status.remaining,
        )
