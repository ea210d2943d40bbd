"""Mentor capacity check."""

from dataclasses import dataclass

from mentormatch.domain.models import DEFAULT_MENTOR_CAPACITY, UserProfile

from .exceptions import MentorCapacityReached


@dataclass(frozen=True)
class CapacityStatus:
    capacity: int
    active: int

    @property
    def remaining(self) -> int:
        return max(self.capacity - self.active, 0)


def mentor_capacity(mentor: UserProfile) -> CapacityStatus:
    """Read capacity and active count, applying the defaults for unset values."""
    capacity = mentor.capacity if mentor.capacity is not None else DEFAULT_MENTOR_CAPACITY
    active = mentor.active_mentees_count if mentor.active_mentees_count is not None else 0
    return CapacityStatus(capacity=capacity, active=active)


def ensure_mentor_capacity(mentor: UserProfile) -> CapacityStatus:
    """Return the mentor's capacity status, or raise when no slot is free.

    Raises:
        MentorCapacityReached: If active >= capacity
    """
    status = mentor_capacity(mentor)
    if status.active >= status.capacity:
        raise MentorCapacityReached()
    return status
