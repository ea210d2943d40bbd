"""Unit tests for the mentor capacity guard."""

import pytest

from mentormatch.matching.capacity import CapacityStatus, ensure_mentor_capacity, mentor_capacity
from mentormatch.matching.exceptions import MentorCapacityReached
from tests.helpers import make_mentor


def test_defaults_apply_when_unset():
    status = mentor_capacity(make_mentor(capacity=None, active_mentees_count=None))

    assert status == CapacityStatus(capacity=3, active=0)
    assert status.remaining == 3


def test_free_slot_passes():
    status = ensure_mentor_capacity(make_mentor(capacity=3, active_mentees_count=1))

    assert status.remaining == 2


def test_full_mentor_is_rejected():
    with pytest.raises(MentorCapacityReached) as exc_info:
        ensure_mentor_capacity(make_mentor(capacity=2, active_mentees_count=2))

    assert exc_info.value.status == 409
    assert exc_info.value.code == "MENTOR_CAPACITY_REACHED"


def test_over_capacity_is_rejected():
    """Counts above capacity (e.g. capacity lowered later) still block."""
    with pytest.raises(MentorCapacityReached):
        ensure_mentor_capacity(make_mentor(capacity=1, active_mentees_count=3))


def test_zero_capacity_is_rejected():
    with pytest.raises(MentorCapacityReached):
        ensure_mentor_capacity(make_mentor(capacity=0))


def test_remaining_never_negative():
    assert CapacityStatus(capacity=1, active=4).remaining == 0
