"""Data access layer (repositories) for persistence operations.

Repository classes for users, match requests, mentorships, match audits and
notifications. Repositories encapsulate SQL and return domain models rather
than ORM rows. They never commit; the surrounding get_session() owns the
transaction.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Set, Tuple, Union

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mentormatch.domain.models import (
    DEFAULT_MENTOR_CAPACITY,
    OPEN_STATUSES,
    ApplicationStatus,
    MatchAudit,
    MatchRequest,
    MatchStatus,
    Mentorship,
    Notification,
    UserProfile,
    UserRole,
)
from mentormatch.utils.timestamps import to_storage

from .exceptions import DataIntegrityError, PersistenceError
from .schema import (
    MatchAuditModel,
    MatchRequestModel,
    MentorshipModel,
    NotificationModel,
    UserModel,
)

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for profile reads and mentor capacity counters."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        """Retrieve a user by id, or None when absent.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            user_model = self.session.get(UserModel, user_id, populate_existing=True)
            if user_model is None:
                return None
            return user_model.to_domain()

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def upsert(self, user: UserProfile) -> UserProfile:
        """Insert a new user or overwrite an existing one.

        Raises:
            DataIntegrityError: On constraint violation
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(UserModel, user.id)
            if existing:
                existing.apply(user)
                self.session.flush()
                return existing.to_domain()

            user_model = UserModel.from_domain(user)
            self.session.add(user_model)
            self.session.flush()
            return user_model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error upserting user {user.id}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to upsert user due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting user {user.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert user: {e}") from e

    def list_approved_mentors(self) -> List[UserProfile]:
        """Return every approved mentor ordered by id."""
        try:
            stmt = (
                select(UserModel)
                .where(
                    UserModel.role == UserRole.MENTOR.value,
                    UserModel.application_status == ApplicationStatus.APPROVED.value,
                )
                .order_by(UserModel.id)
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing approved mentors: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list mentors: {e}") from e

    def list_candidate_mentees(
        self, exclude_ids: Iterable[str], limit: int
    ) -> List[UserProfile]:
        """Return up to ``limit`` approved mentees whose ids are not excluded.

        Args:
            exclude_ids: Mentee ids already paired with the mentor
            limit: Maximum pool size
        """
        try:
            excluded = list(exclude_ids)
            stmt = select(UserModel).where(
                UserModel.role == UserRole.MENTEE.value,
                UserModel.application_status == ApplicationStatus.APPROVED.value,
            )
            if excluded:
                stmt = stmt.where(UserModel.id.not_in(excluded))
            stmt = stmt.order_by(UserModel.id).limit(limit)
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing candidate mentees: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list candidate mentees: {e}") from e

    def increment_active_mentees(self, mentor_id: str, require_capacity: bool = False) -> bool:
        """Atomically add one to the mentor's active mentee count.

        Args:
            mentor_id: Mentor to update
            require_capacity: Only increment while the count is below capacity

        Returns:
            True if the row was updated, False if the mentor is missing or full
        """
        try:
            active = func.coalesce(UserModel.active_mentees_count, 0)
            stmt = (
                update(UserModel)
                .where(UserModel.id == mentor_id)
                .values(active_mentees_count=active + 1)
            )
            if require_capacity:
                stmt = stmt.where(
                    active < func.coalesce(UserModel.capacity, DEFAULT_MENTOR_CAPACITY)
                )
            result = self.session.execute(
                stmt.execution_options(synchronize_session="fetch")
            )
            self.session.flush()
            return result.rowcount == 1

        except SQLAlchemyError as e:
            logger.error(
                f"Error incrementing active mentees for {mentor_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to update mentor capacity: {e}") from e


class MatchRequestRepository:
    """Repository for match request storage and conditional transitions."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, match_id: str) -> Optional[MatchRequest]:
        try:
            row = self.session.get(MatchRequestModel, match_id, populate_existing=True)
            return row.to_domain() if row else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving match request {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve match request: {e}") from e

    def get_scoped(
        self,
        match_id: str,
        mentor_id: Optional[str] = None,
        mentee_id: Optional[str] = None,
    ) -> Optional[MatchRequest]:
        """Retrieve a match request only if it belongs to the given participant.

        A request owned by someone else is indistinguishable from a missing one.
        """
        try:
            stmt = select(MatchRequestModel).where(MatchRequestModel.id == match_id)
            if mentor_id is not None:
                stmt = stmt.where(MatchRequestModel.mentor_id == mentor_id)
            if mentee_id is not None:
                stmt = stmt.where(MatchRequestModel.mentee_id == mentee_id)
            row = self.session.execute(
                stmt.execution_options(populate_existing=True)
            ).scalar_one_or_none()
            return row.to_domain() if row else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving match request {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve match request: {e}") from e

    def get_by_pair(self, mentor_id: str, mentee_id: str) -> Optional[MatchRequest]:
        try:
            row = self._pair_row(mentor_id, mentee_id)
            return row.to_domain() if row else None

        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving match request {mentor_id}/{mentee_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to retrieve match request: {e}") from e

    def mentee_ids_for_mentor(self, mentor_id: str, progressed_only: bool = False) -> Set[str]:
        """Return ids of mentees that have a match request with the mentor.

        Args:
            mentor_id: Mentor whose requests to scan
            progressed_only: Skip requests still at ``suggested``
        """
        try:
            stmt = select(MatchRequestModel.mentee_id).where(
                MatchRequestModel.mentor_id == mentor_id
            )
            if progressed_only:
                stmt = stmt.where(MatchRequestModel.status != MatchStatus.SUGGESTED.value)
            return set(self.session.execute(stmt).scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error listing mentees for mentor {mentor_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list matched mentees: {e}") from e

    def upsert_suggestion(self, candidate: MatchRequest) -> Tuple[MatchRequest, bool]:
        """Insert a suggestion or refresh the existing one for the same pair.

        Inserts always start at status ``suggested``. Updates refresh score,
        breakdown, snapshots, metadata and expiry, and never touch status or
        notes, so a suggestion that has progressed is never reset.

        Args:
            candidate: Freshly scored request; its id and created_at are used
                only on insert

        Returns:
            Tuple of (persisted MatchRequest, True if inserted)

        Raises:
            DataIntegrityError: If the pair was inserted concurrently
            PersistenceError: If database error occurs
        """
        try:
            existing = self._pair_row(candidate.mentor_id, candidate.mentee_id)

            if existing:
                refreshed = MatchRequestModel.from_domain(candidate)
                existing.score = refreshed.score
                existing.score_breakdown = refreshed.score_breakdown
                existing.mentee_snapshot = refreshed.mentee_snapshot
                existing.mentor_snapshot = refreshed.mentor_snapshot
                existing.match_metadata = refreshed.match_metadata
                existing.expires_at = refreshed.expires_at
                existing.updated_at = refreshed.updated_at
                self.session.flush()
                return existing.to_domain(), False

            row = MatchRequestModel.from_domain(
                candidate.model_copy(update={"status": MatchStatus.SUGGESTED, "notes": None})
            )
            self.session.add(row)
            self.session.flush()
            return row.to_domain(), True

        except IntegrityError as e:
            logger.error(
                f"Integrity error upserting match {candidate.mentor_id}/{candidate.mentee_id}: {e}",
                exc_info=True,
            )
            raise DataIntegrityError(
                f"Failed to upsert match request due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(
                f"Error upserting match {candidate.mentor_id}/{candidate.mentee_id}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to upsert match request: {e}") from e

    def transition_status(
        self,
        match_id: str,
        from_status: Union[MatchStatus, str],
        to_status: Union[MatchStatus, str],
        now: datetime,
        notes: Optional[str] = None,
    ) -> bool:
        """Move a request to ``to_status`` only if it is still in ``from_status``.

        Args:
            match_id: Request to update
            from_status: Status the caller observed
            to_status: New status
            now: Timestamp for updated_at
            notes: Replacement notes; existing notes are kept when None

        Returns:
            True if the row changed, False if another writer got there first
        """
        try:
            values = {
                "status": MatchStatus(to_status).value,
                "updated_at": to_storage(now),
            }
            if notes is not None:
                values["notes"] = notes

            stmt = (
                update(MatchRequestModel)
                .where(
                    MatchRequestModel.id == match_id,
                    MatchRequestModel.status == MatchStatus(from_status).value,
                )
                .values(**values)
                .execution_options(synchronize_session="fetch")
            )
            result = self.session.execute(stmt)
            self.session.flush()
            return result.rowcount == 1

        except SQLAlchemyError as e:
            logger.error(f"Error transitioning match request {match_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update match status: {e}") from e

    def list_open_for_mentor(self, mentor_id: str, now: datetime, limit: int) -> List[MatchRequest]:
        """Open, unexpired requests for a mentor, best score first."""
        return self._list_open(MatchRequestModel.mentor_id == mentor_id, now, limit)

    def list_open_for_mentee(self, mentee_id: str, now: datetime, limit: int) -> List[MatchRequest]:
        """Open, unexpired requests for a mentee, best score first."""
        return self._list_open(MatchRequestModel.mentee_id == mentee_id, now, limit)

    def list_for_mentor(self, mentor_id: str) -> List[MatchRequest]:
        return self._list_recent(MatchRequestModel.mentor_id == mentor_id)

    def list_for_mentee(self, mentee_id: str) -> List[MatchRequest]:
        return self._list_recent(MatchRequestModel.mentee_id == mentee_id)

    def _pair_row(self, mentor_id: str, mentee_id: str) -> Optional[MatchRequestModel]:
        stmt = select(MatchRequestModel).where(
            MatchRequestModel.mentor_id == mentor_id,
            MatchRequestModel.mentee_id == mentee_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def _list_open(self, owner_clause, now: datetime, limit: int) -> List[MatchRequest]:
        try:
            stmt = (
                select(MatchRequestModel)
                .where(
                    owner_clause,
                    MatchRequestModel.status.in_([status.value for status in OPEN_STATUSES]),
                    or_(
                        MatchRequestModel.expires_at.is_(None),
                        MatchRequestModel.expires_at > to_storage(now),
                    ),
                )
                .order_by(MatchRequestModel.score.desc(), MatchRequestModel.updated_at.desc())
                .limit(limit)
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing open match requests: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list suggestions: {e}") from e

    def _list_recent(self, owner_clause) -> List[MatchRequest]:
        try:
            stmt = (
                select(MatchRequestModel)
                .where(owner_clause)
                .order_by(MatchRequestModel.updated_at.desc())
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing match requests: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list match requests: {e}") from e


class MentorshipRepository:
    """Repository for confirmed mentorships."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, mentorship: Mentorship) -> Mentorship:
        """Insert a mentorship.

        Raises:
            DataIntegrityError: If the request or the pair already has a mentorship
            PersistenceError: If database error occurs
        """
        try:
            row = MentorshipModel.from_domain(mentorship)
            self.session.add(row)
            self.session.flush()
            return row.to_domain()

        except IntegrityError as e:
            logger.error(
                f"Integrity error creating mentorship {mentorship.mentor_id}/{mentorship.mentee_id}: {e}",
                exc_info=True,
            )
            raise DataIntegrityError(
                f"Failed to create mentorship due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating mentorship: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create mentorship: {e}") from e

    def get_by_match_request(self, match_request_id: str) -> Optional[Mentorship]:
        try:
            stmt = select(MentorshipModel).where(
                MentorshipModel.match_request_id == match_request_id
            )
            row = self.session.execute(stmt).scalar_one_or_none()
            return row.to_domain() if row else None

        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving mentorship for match {match_request_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to retrieve mentorship: {e}") from e

    def mentee_ids_for_mentor(self, mentor_id: str) -> Set[str]:
        try:
            stmt = select(MentorshipModel.mentee_id).where(MentorshipModel.mentor_id == mentor_id)
            return set(self.session.execute(stmt).scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error listing mentorships for mentor {mentor_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list mentorships: {e}") from e

    def list_for_mentor(self, mentor_id: str) -> List[Mentorship]:
        return self._list(MentorshipModel.mentor_id == mentor_id)

    def list_for_mentee(self, mentee_id: str) -> List[Mentorship]:
        return self._list(MentorshipModel.mentee_id == mentee_id)

    def _list(self, owner_clause) -> List[Mentorship]:
        try:
            stmt = (
                select(MentorshipModel)
                .where(owner_clause)
                .order_by(MentorshipModel.started_at.desc())
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing mentorships: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list mentorships: {e}") from e


class MatchAuditRepository:
    """Append-only access to the match audit log."""

    def __init__(self, session: Session):
        self.session = session

    def append(self, audit: MatchAudit) -> MatchAudit:
        try:
            row = MatchAuditModel.from_domain(audit)
            self.session.add(row)
            self.session.flush()
            return row.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error appending audit {audit.action}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to append audit due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error appending audit {audit.action}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to append audit: {e}") from e

    def list_for_match(self, match_request_id: str) -> List[MatchAudit]:
        """Audit records for one request, oldest first."""
        try:
            stmt = (
                select(MatchAuditModel)
                .where(MatchAuditModel.match_request_id == match_request_id)
                .order_by(MatchAuditModel.created_at.asc())
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing audits for {match_request_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list audits: {e}") from e


class NotificationRepository:
    """Repository for in-app notifications."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, notification: Notification) -> Notification:
        try:
            row = NotificationModel.from_domain(notification)
            self.session.add(row)
            self.session.flush()
            return row.to_domain()

        except SQLAlchemyError as e:
            logger.error(
                f"Error storing notification for user {notification.user_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to store notification: {e}") from e

    def list_for_user(self, user_id: str) -> List[Notification]:
        """Notifications for one user, newest first."""
        try:
            stmt = (
                select(NotificationModel)
                .where(NotificationModel.user_id == user_id)
                .order_by(NotificationModel.created_at.desc())
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing notifications for {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list notifications: {e}") from e
