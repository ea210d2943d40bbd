"""Mutual-consent state machine for match requests.

    suggested --mentor accept--> mentor_accepted --mentee accept--> connected
    suggested --mentee accept--> mentee_accepted --mentor accept--> connected
    suggested/*_accepted --decline--> mentor_declined | mentee_declined
    any open status past expires_at --> expired

Every action is scoped to the acting participant, checks expiry lazily, and
writes its status change as a conditional update keyed on the status it
observed, so two concurrent actions on the same request cannot both win.
Confirming a mentorship (status change, mentorship row, capacity increment)
happens in one transaction. Audit and notification side effects follow the
commit and are best-effort.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Tuple

from sqlalchemy.orm import Session

from mentormatch.domain.models import (
    ActorRole,
    AuditAction,
    MatchRequest,
    MatchStatus,
    Mentorship,
    MentorshipMetadata,
    NotificationType,
)
from mentormatch.logging import get_logger
from mentormatch.logging.context import log_context
from mentormatch.notifications.service import NotificationService
from mentormatch.persistence.database import get_session
from mentormatch.persistence.exceptions import DataIntegrityError
from mentormatch.persistence.repositories import (
    MatchRequestRepository,
    MentorshipRepository,
    UserRepository,
)
from mentormatch.utils.identifiers import new_record_id
from mentormatch.utils.timestamps import utc_now

from .capacity import ensure_mentor_capacity
from .events import notify_user, record_audit
from .exceptions import (
    MatchExpired,
    MatchNotActionable,
    MatchNotFound,
    MentorCapacityReached,
    MentorNotAvailable,
)

logger = get_logger(__name__, component="lifecycle")

# A mentorship needs one side to have accepted already
HALF_ACCEPTED_STATUSES = frozenset({MatchStatus.MENTOR_ACCEPTED, MatchStatus.MENTEE_ACCEPTED})


@dataclass(frozen=True)
class MatchDecision:
    """Outcome of a lifecycle action."""

    match: MatchRequest
    status: MatchStatus
    mentorship: Optional[Mentorship] = None


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


class MatchLifecycleManager:
    """Applies mentor and mentee decisions to match requests."""

    def __init__(
        self,
        notifier: Optional[NotificationService] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.notifier = notifier or NotificationService()
        self._clock = clock

    def mentor_accept_match(
        self,
        match_id: str,
        mentor_id: str,
        note: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> MatchDecision:
        """Record the mentor's acceptance, confirming the mentorship if the
        mentee has already accepted.

        Raises:
            MatchNotFound: No such match for this mentor
            MatchExpired: The suggestion's validity window has closed
            MatchNotActionable: The match is terminal or changed concurrently
            MentorCapacityReached: The mentor has no free slot
        """
        note = _clean_text(note)
        with log_context(match_id=match_id, mentor_id=mentor_id):
            now = self._clock()
            self._expire_if_stale(match_id, now, mentor_id, ip_address, mentor_id=mentor_id)

            with get_session() as session:
                match = self._load_actionable(session, match_id, mentor_id=mentor_id)

                mentor = UserRepository(session).get_by_id(mentor_id)
                if mentor is None:
                    raise MentorNotAvailable()
                ensure_mentor_capacity(mentor)

                if match.status == MatchStatus.MENTEE_ACCEPTED:
                    match, mentorship = self._connect(
                        session, match, now, require_capacity=True, notes=note
                    )
                else:
                    mentorship = None
                    match = self._advance(
                        session, match, MatchStatus.MENTOR_ACCEPTED, now, notes=note
                    )

            if mentorship is not None:
                self._announce_connection(match, mentorship, mentor_id, ip_address)
                return MatchDecision(match, MatchStatus.CONNECTED, mentorship)

            notify_user(
                self.notifier,
                match.mentee_id,
                NotificationType.MATCH_RESPONSE,
                title="Mentor accepted your application",
                message="Your mentor accepted the match. Please confirm to finalize.",
                data={"match_request_id": match.id},
            )
            record_audit(
                match.id,
                actor_id=mentor_id,
                actor_role=ActorRole.MENTOR,
                action=AuditAction.MENTOR_ACCEPT,
                ip_address=ip_address,
                now=now,
            )
            logger.info(
                f"Mentor {mentor_id} accepted match {match.id}",
                extra={"event": "match.mentor_accept", "status": match.status.value},
            )
            return MatchDecision(match, MatchStatus.MENTOR_ACCEPTED)

    def mentor_decline_match(
        self,
        match_id: str,
        mentor_id: str,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> MatchDecision:
        """Decline on the mentor's behalf; the reason is kept as the match notes."""
        reason = _clean_text(reason)
        with log_context(match_id=match_id, mentor_id=mentor_id):
            now = self._clock()
            self._expire_if_stale(match_id, now, mentor_id, ip_address, mentor_id=mentor_id)

            with get_session() as session:
                match = self._load_actionable(session, match_id, mentor_id=mentor_id)
                match = self._advance(
                    session, match, MatchStatus.MENTOR_DECLINED, now, notes=reason
                )

            notify_user(
                self.notifier,
                match.mentee_id,
                NotificationType.MATCH_DECLINED,
                title="Mentor declined the match",
                message="This mentor declined the suggestion. We will find another match for you soon.",
                data={"match_request_id": match.id},
            )
            record_audit(
                match.id,
                actor_id=mentor_id,
                actor_role=ActorRole.MENTOR,
                action=AuditAction.MENTOR_DECLINE,
                reason=reason,
                ip_address=ip_address,
                now=now,
            )
            logger.info(
                f"Mentor {mentor_id} declined match {match.id}",
                extra={"event": "match.mentor_decline"},
            )
            return MatchDecision(match, MatchStatus.MENTOR_DECLINED)

    def mentee_accept_match(
        self,
        match_id: str,
        mentee_id: str,
        ip_address: Optional[str] = None,
    ) -> MatchDecision:
        """Record the mentee's acceptance, confirming the mentorship if the
        mentor has already accepted.

        The mentor's capacity was checked when the mentor accepted, so no
        capacity check happens here.
        """
        with log_context(match_id=match_id, mentee_id=mentee_id):
            now = self._clock()
            self._expire_if_stale(match_id, now, mentee_id, ip_address, mentee_id=mentee_id)

            with get_session() as session:
                match = self._load_actionable(session, match_id, mentee_id=mentee_id)

                if match.status == MatchStatus.MENTOR_ACCEPTED:
                    match, mentorship = self._connect(
                        session, match, now, require_capacity=False
                    )
                else:
                    mentorship = None
                    match = self._advance(session, match, MatchStatus.MENTEE_ACCEPTED, now)

            if mentorship is not None:
                self._announce_connection(match, mentorship, mentee_id, ip_address)
                return MatchDecision(match, MatchStatus.CONNECTED, mentorship)

            notify_user(
                self.notifier,
                match.mentor_id,
                NotificationType.MATCH_RESPONSE,
                title="Mentee accepted the match",
                message="Your mentee accepted the match suggestion. Please confirm to finalize.",
                data={"match_request_id": match.id},
            )
            record_audit(
                match.id,
                actor_id=mentee_id,
                actor_role=ActorRole.MENTEE,
                action=AuditAction.MENTEE_ACCEPT,
                ip_address=ip_address,
                now=now,
            )
            logger.info(
                f"Mentee {mentee_id} accepted match {match.id}",
                extra={"event": "match.mentee_accept"},
            )
            return MatchDecision(match, MatchStatus.MENTEE_ACCEPTED)

    def mentee_decline_match(
        self,
        match_id: str,
        mentee_id: str,
        reason: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> MatchDecision:
        reason = _clean_text(reason)
        with log_context(match_id=match_id, mentee_id=mentee_id):
            now = self._clock()
            self._expire_if_stale(match_id, now, mentee_id, ip_address, mentee_id=mentee_id)

            with get_session() as session:
                match = self._load_actionable(session, match_id, mentee_id=mentee_id)
                match = self._advance(
                    session, match, MatchStatus.MENTEE_DECLINED, now, notes=reason
                )

            notify_user(
                self.notifier,
                match.mentor_id,
                NotificationType.MATCH_DECLINED,
                title="Mentee declined the match",
                message="The mentee declined this match suggestion. We will look for another candidate soon.",
                data={"match_request_id": match.id},
            )
            record_audit(
                match.id,
                actor_id=mentee_id,
                actor_role=ActorRole.MENTEE,
                action=AuditAction.MENTEE_DECLINE,
                reason=reason,
                ip_address=ip_address,
                now=now,
            )
            logger.info(
                f"Mentee {mentee_id} declined match {match.id}",
                extra={"event": "match.mentee_decline"},
            )
            return MatchDecision(match, MatchStatus.MENTEE_DECLINED)

    def establish_mentorship(
        self,
        match_request: MatchRequest,
        actor_id: str,
        ip_address: Optional[str] = None,
    ) -> MatchDecision:
        """Confirm a mentorship for a request in its currently observed status.

        Only a request one participant has already accepted can be confirmed.

        Raises:
            MatchNotActionable: The request is not half-accepted, moved on since
                it was read, or already has a mentorship
        """
        with log_context(match_id=match_request.id):
            now = self._clock()
            with get_session() as session:
                match, mentorship = self._connect(
                    session, match_request, now, require_capacity=False
                )
            self._announce_connection(match, mentorship, actor_id, ip_address)
            return MatchDecision(match, MatchStatus.CONNECTED, mentorship)

    def _expire_if_stale(
        self,
        match_id: str,
        now: datetime,
        actor_id: str,
        ip_address: Optional[str],
        mentor_id: Optional[str] = None,
        mentee_id: Optional[str] = None,
    ) -> None:
        """Raise MatchExpired for a request past its TTL, persisting the expiry.

        Requests already in a terminal status are left alone; an already
        expired request raises without writing anything.
        """
        with get_session() as session:
            matches = MatchRequestRepository(session)
            match = matches.get_scoped(match_id, mentor_id=mentor_id, mentee_id=mentee_id)
            if match is None:
                raise MatchNotFound()
            if match.status == MatchStatus.EXPIRED:
                raise MatchExpired()
            if match.is_terminal or not match.is_past_ttl(now):
                return
            expired_now = matches.transition_status(
                match.id, match.status, MatchStatus.EXPIRED, now
            )

        if not expired_now:
            # Another writer moved the request first; let the caller re-read it.
            return

        record_audit(
            match.id,
            actor_id=actor_id,
            actor_role=ActorRole.SYSTEM,
            action=AuditAction.EXPIRED,
            ip_address=ip_address,
            now=now,
        )
        logger.info(
            f"Match {match.id} expired before it could be actioned",
            extra={"event": "match.expired"},
        )
        raise MatchExpired()

    def _load_actionable(
        self,
        session: Session,
        match_id: str,
        mentor_id: Optional[str] = None,
        mentee_id: Optional[str] = None,
    ) -> MatchRequest:
        match = MatchRequestRepository(session).get_scoped(
            match_id, mentor_id=mentor_id, mentee_id=mentee_id
        )
        if match is None:
            raise MatchNotFound()
        if match.status == MatchStatus.EXPIRED:
            raise MatchExpired()
        if match.is_terminal:
            raise MatchNotActionable()
        return match

    def _advance(
        self,
        session: Session,
        match: MatchRequest,
        to_status: MatchStatus,
        now: datetime,
        notes: Optional[str] = None,
    ) -> MatchRequest:
        matches = MatchRequestRepository(session)
        if not matches.transition_status(match.id, match.status, to_status, now, notes=notes):
            raise MatchNotActionable("Match changed while it was being updated")
        return matches.get_by_id(match.id)

    def _connect(
        self,
        session: Session,
        match: MatchRequest,
        now: datetime,
        require_capacity: bool,
        notes: Optional[str] = None,
    ) -> Tuple[MatchRequest, Mentorship]:
        """Mark the request connected, bump capacity and create the mentorship.

        All three writes share the caller's transaction; any failure raises
        and rolls back the lot.
        """
        if match.status not in HALF_ACCEPTED_STATUSES:
            raise MatchNotActionable("Match has not been accepted by either participant")

        matches = MatchRequestRepository(session)
        if not matches.transition_status(
            match.id, match.status, MatchStatus.CONNECTED, now, notes=notes
        ):
            raise MatchNotActionable("Match changed while it was being confirmed")

        if not UserRepository(session).increment_active_mentees(
            match.mentor_id, require_capacity=require_capacity
        ):
            if require_capacity:
                raise MentorCapacityReached()
            raise MentorNotAvailable()

        try:
            mentorship = MentorshipRepository(session).create(
                Mentorship(
                    id=new_record_id(),
                    mentor_id=match.mentor_id,
                    mentee_id=match.mentee_id,
                    match_request_id=match.id,
                    started_at=now,
                    metadata=MentorshipMetadata(
                        goals=match.metadata.reason,
                        program=match.mentee_snapshot.program if match.mentee_snapshot else None,
                    ),
                )
            )
        except DataIntegrityError as e:
            raise MatchNotActionable("A mentorship already exists for this match") from e

        return matches.get_by_id(match.id), mentorship

    def _announce_connection(
        self,
        match: MatchRequest,
        mentorship: Mentorship,
        actor_id: str,
        ip_address: Optional[str],
    ) -> None:
        notify_user(
            self.notifier,
            match.mentor_id,
            NotificationType.MATCH_CONFIRMED,
            title="Mentorship confirmed",
            message="You and your mentee both accepted. A mentorship connection has been created.",
            data={"mentorship_id": mentorship.id, "match_request_id": match.id},
        )
        notify_user(
            self.notifier,
            match.mentee_id,
            NotificationType.MATCH_CONFIRMED,
            title="Mentor confirmed!",
            message="Your mentor accepted your request. You are now officially matched.",
            data={"mentorship_id": mentorship.id, "mentor_id": match.mentor_id},
        )
        record_audit(
            match.id,
            actor_id=actor_id or match.mentor_id,
            actor_role=ActorRole.SYSTEM,
            action=AuditAction.CONNECTED,
            ip_address=ip_address,
            meta={"mentorship_id": mentorship.id},
        )
        logger.info(
            f"Mentorship {mentorship.id} created for match {match.id}",
            extra={
                "event": "match.connected",
                "mentorship_id": mentorship.id,
                "mentor_id": match.mentor_id,
                "mentee_id": match.mentee_id,
            },
        )
