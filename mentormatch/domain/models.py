"""Core domain models for the matching engine.

This module defines the data structures used throughout the engine:
- UserProfile: the mentor/mentee profile record the engine reads
- ProfileSnapshot: immutable copy of profile data taken at suggestion time
- MatchRequest: a scored, stateful suggestion pairing a mentor and a mentee
- Mentorship: the confirmed relationship created on mutual acceptance
- MatchAudit: append-only record of every match event
- Notification: an in-app notification addressed to one user
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator

from mentormatch.utils.timestamps import ensure_utc

DEFAULT_MENTOR_CAPACITY = 3


class UserRole(str, Enum):
    MENTEE = "mentee"
    MENTOR = "mentor"
    ADMIN = "admin"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MatchStatus(str, Enum):
    """Lifecycle states of a MatchRequest."""

    SUGGESTED = "suggested"
    MENTOR_ACCEPTED = "mentor_accepted"
    MENTOR_DECLINED = "mentor_declined"
    MENTEE_ACCEPTED = "mentee_accepted"
    MENTEE_DECLINED = "mentee_declined"
    REJECTED = "rejected"
    CONNECTED = "connected"
    EXPIRED = "expired"


TERMINAL_STATUSES = frozenset(
    {
        MatchStatus.CONNECTED,
        MatchStatus.MENTOR_DECLINED,
        MatchStatus.MENTEE_DECLINED,
        MatchStatus.EXPIRED,
        MatchStatus.REJECTED,
    }
)

# Statuses still waiting on at least one party
OPEN_STATUSES = (
    MatchStatus.SUGGESTED,
    MatchStatus.MENTOR_ACCEPTED,
    MatchStatus.MENTEE_ACCEPTED,
)


class MentorshipStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ActorRole(str, Enum):
    MENTOR = "mentor"
    MENTEE = "mentee"
    ADMIN = "admin"
    SYSTEM = "system"


class AuditAction(str, Enum):
    SUGGESTED = "suggested"
    MENTOR_ACCEPT = "mentor_accept"
    MENTOR_DECLINE = "mentor_decline"
    MENTEE_ACCEPT = "mentee_accept"
    MENTEE_DECLINE = "mentee_decline"
    EXPIRED = "expired"
    CONNECTED = "connected"


class NotificationType(str, Enum):
    MATCH_SUGGESTION = "MATCH_SUGGESTION"
    MATCH_RESPONSE = "MATCH_RESPONSE"
    MATCH_CONFIRMED = "MATCH_CONFIRMED"
    MATCH_DECLINED = "MATCH_DECLINED"


class _UTCModel(BaseModel):
    """Base model that normalises every datetime field to aware UTC."""

    @field_validator("*", mode="after")
    @classmethod
    def _coerce_utc(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return ensure_utc(v)
        return v


class AvailabilitySlot(BaseModel):
    """A weekly availability window; only ``day`` participates in scoring."""

    day: str = Field(..., description="Day label, e.g. 'mon'")
    start: Optional[str] = Field(None, description="Start time HH:MM")
    end: Optional[str] = Field(None, description="End time HH:MM")

    model_config = {"frozen": True}


class UserProfile(BaseModel):
    """Mentor or mentee profile as stored by the user service.

    Capacity fields are only meaningful for mentors. ``None`` means unset;
    the capacity guard applies the defaults.
    """

    id: str = Field(..., min_length=1)
    role: Optional[UserRole] = None
    application_status: ApplicationStatus = ApplicationStatus.PENDING
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    expertise_areas: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)
    mentoring_goals: List[str] = Field(default_factory=list)
    availability_slots: List[AvailabilitySlot] = Field(default_factory=list)
    program: Optional[str] = None
    major: Optional[str] = None
    priority: Optional[Union[int, float, str]] = Field(
        None, description="Mentee-declared priority, numeric 0-100 or high/medium/low"
    )
    capacity: Optional[int] = Field(None, ge=0, description="Maximum active mentees")
    active_mentees_count: Optional[int] = Field(None, ge=0)

    @field_validator(
        "expertise_areas", "skills", "interests", "mentoring_goals", mode="before"
    )
    @classmethod
    def split_tag_string(cls, v: Any) -> Any:
        """Accept a comma-separated string in place of a tag list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @property
    def full_name(self) -> Optional[str]:
        """First and last name joined, or display name, or email."""
        joined = " ".join(part for part in (self.first_name, self.last_name) if part).strip()
        return joined or self.display_name or self.email

    @property
    def is_approved_mentor(self) -> bool:
        return (
            self.role == UserRole.MENTOR
            and self.application_status == ApplicationStatus.APPROVED
        )


class ProfileSnapshot(BaseModel):
    """Immutable profile copy captured when a suggestion is generated.

    Later profile edits never reach an existing snapshot.
    """

    name: Optional[str] = None
    program: Optional[str] = None
    skills: Tuple[str, ...] = ()
    expertise_areas: Tuple[str, ...] = ()
    interests: Tuple[str, ...] = ()
    availability_slots: Tuple[AvailabilitySlot, ...] = ()
    capacity: Optional[int] = None

    model_config = {"frozen": True}

    @classmethod
    def capture(cls, user: UserProfile, include_capacity: bool = False) -> "ProfileSnapshot":
        return cls(
            name=user.full_name,
            program=user.program,
            skills=tuple(user.skills[:10]),
            expertise_areas=tuple(user.expertise_areas[:10]),
            interests=tuple(user.interests[:10]),
            availability_slots=tuple(user.availability_slots[:6]),
            capacity=user.capacity if include_capacity else None,
        )


class ScoreBreakdown(BaseModel):
    """Per-dimension sub-scores, each 0-100."""

    expertise: int = Field(0, ge=0, le=100)
    availability: int = Field(0, ge=0, le=100)
    interactions: int = Field(0, ge=0, le=100)
    priority: int = Field(0, ge=0, le=100)

    model_config = {"frozen": True}


class MatchMetadata(BaseModel):
    availability_overlap: int = 0
    expertise_overlap: int = 0
    previous_interactions: int = 0
    reason: Optional[str] = None


class MatchRequest(_UTCModel):
    """A scored suggestion awaiting mutual consent.

    Unique on (mentor_id, mentee_id). Never deleted, only transitioned.
    """

    id: str
    mentor_id: str
    mentee_id: str
    score: int = Field(0, ge=0, le=100)
    score_breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    status: MatchStatus = MatchStatus.SUGGESTED
    mentee_snapshot: Optional[ProfileSnapshot] = None
    mentor_snapshot: Optional[ProfileSnapshot] = None
    notes: Optional[str] = None
    metadata: MatchMetadata = Field(default_factory=MatchMetadata)
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_past_ttl(self, now: datetime) -> bool:
        """True when the suggestion's validity window has closed."""
        return self.expires_at is not None and self.expires_at < ensure_utc(now)


class MentorshipMetadata(BaseModel):
    goals: Optional[str] = None
    program: Optional[str] = None
    notes: Optional[str] = None


class Mentorship(_UTCModel):
    """Confirmed mentor/mentee relationship."""

    id: str
    mentor_id: str
    mentee_id: str
    match_request_id: Optional[str] = None
    started_at: datetime
    status: MentorshipStatus = MentorshipStatus.ACTIVE
    metadata: MentorshipMetadata = Field(default_factory=MentorshipMetadata)


class MatchAudit(_UTCModel):
    """Write-once event record keyed by match request."""

    id: str
    match_request_id: str
    actor_id: str
    actor_role: ActorRole
    action: AuditAction
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class Notification(_UTCModel):
    """In-app notification addressed to a single user."""

    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    read_at: Optional[datetime] = None
