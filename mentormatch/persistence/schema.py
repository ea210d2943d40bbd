"""Database schema definition and ORM models.

SQLAlchemy ORM models for users, match requests, mentorships, match audits
and notifications, with conversions to and from the domain models.
Timestamps are stored as fixed-width ISO 8601 strings; structured values
(tag lists, snapshots, breakdowns) are stored as JSON.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from mentormatch.domain.models import (
    AvailabilitySlot,
    MatchAudit,
    MatchMetadata,
    MatchRequest,
    Mentorship,
    MentorshipMetadata,
    Notification,
    ProfileSnapshot,
    ScoreBreakdown,
    UserProfile,
)
from mentormatch.utils.timestamps import from_storage, to_storage

logger = logging.getLogger(__name__)

Base = declarative_base()


class UserModel(Base):
    """ORM model for users table.

    Holds the subset of the profile record the matching engine reads, plus the
    mentor capacity counters it mutates.
    """

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, nullable=False)
    role = Column(String(20), nullable=True)
    application_status = Column(String(20), nullable=False, default="pending")

    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=True)
    email = Column(String(320), nullable=True)

    expertise_areas = Column(JSON, nullable=False, default=list)
    skills = Column(JSON, nullable=False, default=list)
    interests = Column(JSON, nullable=False, default=list)
    mentoring_goals = Column(JSON, nullable=False, default=list)
    availability_slots = Column(JSON, nullable=False, default=list)
    program = Column(String(255), nullable=True)
    major = Column(String(255), nullable=True)
    priority = Column(JSON, nullable=True)

    # Mentor capacity; NULL means the default applies
    capacity = Column(Integer, nullable=True)
    active_mentees_count = Column(Integer, nullable=True)

    __table_args__ = (Index("idx_users_role_status", "role", "application_status"),)

    def to_domain(self) -> UserProfile:
        return UserProfile(
            id=self.id,
            role=self.role,
            application_status=self.application_status,
            first_name=self.first_name,
            last_name=self.last_name,
            display_name=self.display_name,
            email=self.email,
            expertise_areas=self.expertise_areas or [],
            skills=self.skills or [],
            interests=self.interests or [],
            mentoring_goals=self.mentoring_goals or [],
            availability_slots=[
                AvailabilitySlot.model_validate(slot) for slot in self.availability_slots or []
            ],
            program=self.program,
            major=self.major,
            priority=self.priority,
            capacity=self.capacity,
            active_mentees_count=self.active_mentees_count,
        )

    @classmethod
    def from_domain(cls, user: UserProfile) -> "UserModel":
        model = cls(id=user.id)
        model.apply(user)
        return model

    def apply(self, user: UserProfile) -> None:
        """Copy every profile field from ``user`` onto this row."""
        self.role = user.role.value if user.role else None
        self.application_status = user.application_status.value
        self.first_name = user.first_name
        self.last_name = user.last_name
        self.display_name = user.display_name
        self.email = user.email
        self.expertise_areas = list(user.expertise_areas)
        self.skills = list(user.skills)
        self.interests = list(user.interests)
        self.mentoring_goals = list(user.mentoring_goals)
        self.availability_slots = [slot.model_dump() for slot in user.availability_slots]
        self.program = user.program
        self.major = user.major
        self.priority = user.priority
        self.capacity = user.capacity
        self.active_mentees_count = user.active_mentees_count


class MatchRequestModel(Base):
    """ORM model for match_requests table.

    One row per (mentor, mentee) pair. Rows are transitioned, never deleted.
    """

    __tablename__ = "match_requests"

    id = Column(String(32), primary_key=True, nullable=False)
    mentor_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    mentee_id = Column(String(64), ForeignKey("users.id"), nullable=False)

    score = Column(Integer, nullable=False, default=0)
    score_breakdown = Column(JSON, nullable=False, default=dict)
    status = Column(String(32), nullable=False, default="suggested")

    mentee_snapshot = Column(JSON, nullable=True)
    mentor_snapshot = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    match_metadata = Column("metadata", JSON, nullable=False, default=dict)

    expires_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("mentor_id", "mentee_id", name="uq_match_requests_pair"),
        Index("idx_match_requests_mentor_status", "mentor_id", "status"),
        Index("idx_match_requests_mentee_status", "mentee_id", "status"),
        Index("idx_match_requests_expires", "expires_at"),
    )

    def to_domain(self) -> MatchRequest:
        return MatchRequest(
            id=self.id,
            mentor_id=self.mentor_id,
            mentee_id=self.mentee_id,
            score=self.score,
            score_breakdown=ScoreBreakdown.model_validate(self.score_breakdown or {}),
            status=self.status,
            mentee_snapshot=_load_snapshot(self.mentee_snapshot),
            mentor_snapshot=_load_snapshot(self.mentor_snapshot),
            notes=self.notes,
            metadata=MatchMetadata.model_validate(self.match_metadata or {}),
            expires_at=from_storage(self.expires_at),
            created_at=from_storage(self.created_at),
            updated_at=from_storage(self.updated_at),
        )

    @classmethod
    def from_domain(cls, match: MatchRequest) -> "MatchRequestModel":
        return cls(
            id=match.id,
            mentor_id=match.mentor_id,
            mentee_id=match.mentee_id,
            score=match.score,
            score_breakdown=match.score_breakdown.model_dump(),
            status=match.status.value,
            mentee_snapshot=_dump_snapshot(match.mentee_snapshot),
            mentor_snapshot=_dump_snapshot(match.mentor_snapshot),
            notes=match.notes,
            match_metadata=match.metadata.model_dump(),
            expires_at=to_storage(match.expires_at),
            created_at=to_storage(match.created_at),
            updated_at=to_storage(match.updated_at),
        )


class MentorshipModel(Base):
    """ORM model for mentorships table.

    Uniqueness on the originating match request and on the pair guarantees a
    mentorship is created at most once.
    """

    __tablename__ = "mentorships"

    id = Column(String(32), primary_key=True, nullable=False)
    mentor_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    mentee_id = Column(String(64), ForeignKey("users.id"), nullable=False)
    match_request_id = Column(
        String(32), ForeignKey("match_requests.id"), nullable=True, unique=True
    )
    started_at = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="active")
    mentorship_metadata = Column("metadata", JSON, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("mentor_id", "mentee_id", name="uq_mentorships_pair"),
        Index("idx_mentorships_mentee", "mentee_id"),
    )

    def to_domain(self) -> Mentorship:
        return Mentorship(
            id=self.id,
            mentor_id=self.mentor_id,
            mentee_id=self.mentee_id,
            match_request_id=self.match_request_id,
            started_at=from_storage(self.started_at),
            status=self.status,
            metadata=MentorshipMetadata.model_validate(self.mentorship_metadata or {}),
        )

    @classmethod
    def from_domain(cls, mentorship: Mentorship) -> "MentorshipModel":
        return cls(
            id=mentorship.id,
            mentor_id=mentorship.mentor_id,
            mentee_id=mentorship.mentee_id,
            match_request_id=mentorship.match_request_id,
            started_at=to_storage(mentorship.started_at),
            status=mentorship.status.value,
            mentorship_metadata=mentorship.metadata.model_dump(),
        )


class MatchAuditModel(Base):
    """ORM model for match_audits table (append-only)."""

    __tablename__ = "match_audits"

    id = Column(String(32), primary_key=True, nullable=False)
    match_request_id = Column(String(32), ForeignKey("match_requests.id"), nullable=False)
    actor_id = Column(String(64), nullable=False)
    actor_role = Column(String(20), nullable=False)
    action = Column(String(32), nullable=False)
    reason = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    meta = Column(JSON, nullable=False, default=dict)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_match_audits_match", "match_request_id", "created_at"),)

    def to_domain(self) -> MatchAudit:
        return MatchAudit(
            id=self.id,
            match_request_id=self.match_request_id,
            actor_id=self.actor_id,
            actor_role=self.actor_role,
            action=self.action,
            reason=self.reason,
            ip_address=self.ip_address,
            meta=self.meta or {},
            created_at=from_storage(self.created_at),
        )

    @classmethod
    def from_domain(cls, audit: MatchAudit) -> "MatchAuditModel":
        return cls(
            id=audit.id,
            match_request_id=audit.match_request_id,
            actor_id=audit.actor_id,
            actor_role=audit.actor_role.value,
            action=audit.action.value,
            reason=audit.reason,
            ip_address=audit.ip_address,
            meta=dict(audit.meta),
            created_at=to_storage(audit.created_at),
        )


class NotificationModel(Base):
    """ORM model for notifications table."""

    __tablename__ = "notifications"

    id = Column(String(32), primary_key=True, nullable=False)
    user_id = Column(String(64), nullable=False)
    type = Column(String(32), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(String(50), nullable=False)
    read_at = Column(String(50), nullable=True)

    __table_args__ = (Index("idx_notifications_user", "user_id", "created_at"),)

    def to_domain(self) -> Notification:
        return Notification(
            id=self.id,
            user_id=self.user_id,
            type=self.type,
            title=self.title,
            message=self.message,
            data=self.data or {},
            created_at=from_storage(self.created_at),
            read_at=from_storage(self.read_at),
        )

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationModel":
        return cls(
            id=notification.id,
            user_id=notification.user_id,
            type=notification.type.value,
            title=notification.title,
            message=notification.message,
            data=dict(notification.data),
            created_at=to_storage(notification.created_at),
            read_at=to_storage(notification.read_at),
        )


def _dump_snapshot(snapshot: Optional[ProfileSnapshot]) -> Optional[Dict[str, Any]]:
    if snapshot is None:
        return None
    return snapshot.model_dump(mode="json")


def _load_snapshot(data: Optional[Dict[str, Any]]) -> Optional[ProfileSnapshot]:
    if not data:
        return None
    return ProfileSnapshot.model_validate(data)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
