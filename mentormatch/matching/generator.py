"""Suggestion generation.

For a mentor, score an oversampled pool of approved mentees the mentor has
never been paired with, keep the best, and upsert them as match requests.
Regeneration refreshes scores, snapshots and expiry on existing requests but
never resets their status.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from mentormatch.config.models import MatchingConfig
from mentormatch.domain.models import (
    ActorRole,
    AuditAction,
    MatchMetadata,
    MatchRequest,
    NotificationType,
    ProfileSnapshot,
    UserProfile,
)
from mentormatch.logging import get_logger
from mentormatch.logging.context import log_context
from mentormatch.notifications.service import NotificationService
from mentormatch.persistence.database import get_session
from mentormatch.persistence.repositories import (
    MatchRequestRepository,
    MentorshipRepository,
    UserRepository,
)
from mentormatch.utils.identifiers import new_record_id
from mentormatch.utils.timestamps import add_days, utc_now

from .events import notify_user, record_audit
from .exceptions import MentorNotAvailable
from .scoring import ScoreResult, calculate_score

logger = get_logger(__name__, component="generator")


def rank_candidates(
    mentor: UserProfile, mentees: Sequence[UserProfile], limit: int
) -> List[Tuple[UserProfile, ScoreResult]]:
    """Score every mentee and keep the top ``max(1, limit)``.

    Ties keep the pool order.
    """
    scored = [(mentee, calculate_score(mentor, mentee)) for mentee in mentees]
    scored.sort(key=lambda entry: entry[1].score, reverse=True)
    return scored[: max(1, limit)]


def suggestion_message(count: int) -> str:
    plural = "s" if count > 1 else ""
    return f"We found {count} new mentee{plural} that match your expertise."


class SuggestionGenerator:
    """Builds and refreshes ranked suggestion pools for mentors."""

    def __init__(
        self,
        notifier: Optional[NotificationService] = None,
        matching_config: Optional[MatchingConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.notifier = notifier or NotificationService()
        self.config = matching_config or MatchingConfig()
        self._clock = clock

    def generate_suggestions_for_mentor(
        self, mentor_id: str, limit: Optional[int] = None
    ) -> List[MatchRequest]:
        """Generate or refresh suggestions for one mentor.

        Mentees with a mentorship, or with a request past ``suggested``, are
        skipped. Pending suggestions that rank again get a fresh score and
        expiry but keep their status and are not re-announced.

        Args:
            mentor_id: Approved mentor to generate for
            limit: Number of suggestions to keep (configured default when None)

        Returns:
            The upserted match requests, best score first

        Raises:
            MentorNotAvailable: If the mentor is missing, not a mentor or not approved
            PersistenceError: If the suggestion pool cannot be stored
        """
        if limit is None:
            limit = self.config.suggestion_limit
        now = self._clock()
        expires_at = add_days(now, self.config.suggestion_ttl_days)

        with log_context(mentor_id=mentor_id):
            with get_session() as session:
                users = UserRepository(session)
                matches = MatchRequestRepository(session)

                mentor = users.get_by_id(mentor_id)
                if mentor is None or not mentor.is_approved_mentor:
                    raise MentorNotAvailable()

                # Pending suggestions stay in the pool so their score and expiry refresh
                excluded = matches.mentee_ids_for_mentor(mentor_id, progressed_only=True)
                excluded |= MentorshipRepository(session).mentee_ids_for_mentor(mentor_id)

                pool = users.list_candidate_mentees(
                    excluded, self.config.candidate_pool_size(limit)
                )
                ranked = rank_candidates(mentor, pool, limit)
                mentor_snapshot = ProfileSnapshot.capture(mentor, include_capacity=True)

                persisted: List[MatchRequest] = []
                created: List[MatchRequest] = []
                for mentee, result in ranked:
                    match, is_new = matches.upsert_suggestion(
                        MatchRequest(
                            id=new_record_id(),
                            mentor_id=mentor_id,
                            mentee_id=mentee.id,
                            score=result.score,
                            score_breakdown=result.breakdown,
                            mentee_snapshot=ProfileSnapshot.capture(mentee),
                            mentor_snapshot=mentor_snapshot,
                            metadata=MatchMetadata(
                                availability_overlap=result.breakdown.availability,
                                expertise_overlap=result.breakdown.expertise,
                                previous_interactions=result.breakdown.interactions,
                            ),
                            expires_at=expires_at,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                    persisted.append(match)
                    if is_new:
                        created.append(match)

            for match in created:
                record_audit(
                    match.id,
                    actor_id=mentor_id,
                    actor_role=ActorRole.SYSTEM,
                    action=AuditAction.SUGGESTED,
                    now=now,
                )

            if created:
                notify_user(
                    self.notifier,
                    mentor_id,
                    NotificationType.MATCH_SUGGESTION,
                    title="New mentee suggestions ready",
                    message=suggestion_message(len(created)),
                    data={"mentor_id": mentor_id, "match_count": len(created)},
                )

            logger.info(
                f"Generated {len(persisted)} suggestions for mentor {mentor_id} "
                f"({len(created)} new, pool {len(pool)})",
                extra={
                    "event": "suggestions.generated",
                    "generated": len(persisted),
                    "new_suggestions": len(created),
                    "pool_size": len(pool),
                },
            )

            return persisted

    def generate_suggestions_for_all_mentors(
        self, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Run generation for every approved mentor, one at a time.

        A failure for one mentor is logged and recorded in its summary; the
        remaining mentors still run.

        Returns:
            One summary per mentor: ``{"mentor_id", "generated"}`` or
            ``{"mentor_id", "error"}``
        """
        with get_session() as session:
            mentors = UserRepository(session).list_approved_mentors()

        summaries: List[Dict[str, Any]] = []
        for mentor in mentors:
            try:
                requests = self.generate_suggestions_for_mentor(mentor.id, limit=limit)
                summaries.append({"mentor_id": mentor.id, "generated": len(requests)})
            except Exception as e:
                logger.error(
                    f"Suggestion generation failed for mentor {mentor.id}: {e}",
                    exc_info=True,
                    extra={
                        "event": "suggestions.mentor_failed",
                        "mentor_id": mentor.id,
                        "error_type": type(e).__name__,
                    },
                )
                summaries.append({"mentor_id": mentor.id, "error": str(e) or "failed"})

        return summaries
