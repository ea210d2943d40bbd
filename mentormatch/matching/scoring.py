"""Compatibility scoring between a mentor and a mentee.

The score is a weighted blend of four 0-100 dimensions:
- expertise: overlap of mentor expertise areas with what the mentee needs
- availability: overlap of declared availability days
- interactions: shared program/major plus shared interests
- priority: the mentee's declared priority

Everything here is pure and deterministic.
"""

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union

from mentormatch.domain.models import AvailabilitySlot, ScoreBreakdown, UserProfile

SCORE_WEIGHTS = {
    "expertise": 0.5,
    "availability": 0.25,
    "interactions": 0.15,
    "priority": 0.1,
}

NEUTRAL_OVERLAP = 0.5
ONE_SIDED_OVERLAP = 0.25
NEUTRAL_AVAILABILITY = 60
DEFAULT_PRIORITY = 50

PRIORITY_LABELS = {
    "high": 90,
    "urgent": 90,
    "medium": 60,
    "low": 35,
}


@dataclass(frozen=True)
class ScoreResult:
    score: int
    breakdown: ScoreBreakdown


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up.

    Example:
        >>> round_half_up(32.5), round_half_up(33.4)
        (33, 33)
    """
    return int(math.floor(value + 0.5))


def normalize_tags(value: Union[None, str, Iterable[str]]) -> List[str]:
    """Trim and lower-case tags, dropping empties.

    A comma-separated string is treated as a tag list.
    """
    if not value:
        return []
    if isinstance(value, str):
        entries: Iterable = value.split(",")
    else:
        entries = value
    normalized = (str(entry).strip().lower() for entry in entries if entry is not None)
    return [entry for entry in normalized if entry]


def overlap_ratio(left: Sequence[str], right: Sequence[str]) -> float:
    """Jaccard overlap of two tag lists with neutral values for missing data.

    Both empty gives 0.5, exactly one empty gives 0.25.
    """
    if not left and not right:
        return NEUTRAL_OVERLAP
    if not left or not right:
        return ONE_SIDED_OVERLAP

    left_set, right_set = set(left), set(right)
    union = len(left_set | right_set) or 1
    return len(left_set & right_set) / union


def mentee_needs(mentee: UserProfile) -> List[str]:
    """Skills, else interests, else mentoring goals."""
    for candidate in (mentee.skills, mentee.interests, mentee.mentoring_goals):
        tags = normalize_tags(candidate)
        if tags:
            return tags
    return []


def expertise_score(mentor: UserProfile, mentee: UserProfile) -> int:
    ratio = overlap_ratio(normalize_tags(mentor.expertise_areas), mentee_needs(mentee))
    return round_half_up(ratio * 100)


def _slot_days(slots: Sequence[AvailabilitySlot]) -> List[str]:
    return normalize_tags(slot.day for slot in slots)


def availability_score(mentor: UserProfile, mentee: UserProfile) -> int:
    if not mentor.availability_slots and not mentee.availability_slots:
        return NEUTRAL_AVAILABILITY

    ratio = overlap_ratio(
        _slot_days(mentor.availability_slots), _slot_days(mentee.availability_slots)
    )
    return round_half_up(ratio * 100)


def interaction_score(mentor: UserProfile, mentee: UserProfile) -> int:
    score = 30
    if mentor.program and mentee.program and mentor.program == mentee.program:
        score += 40
    if mentor.major and mentee.major and mentor.major == mentee.major:
        score += 20

    ratio = overlap_ratio(normalize_tags(mentor.interests), normalize_tags(mentee.interests))
    score += round_half_up(ratio * 30)

    return min(100, score)


def priority_score(priority: Optional[Union[int, float, str]]) -> int:
    """Map a numeric or labelled priority onto 0-100."""
    # bool is an int subclass but carries no priority meaning
    if isinstance(priority, (int, float)) and not isinstance(priority, bool):
        return round_half_up(max(0.0, min(100.0, float(priority))))
    if isinstance(priority, str):
        return PRIORITY_LABELS.get(priority.strip().lower(), DEFAULT_PRIORITY)
    return DEFAULT_PRIORITY


def calculate_score(mentor: UserProfile, mentee: UserProfile) -> ScoreResult:
    """Score a mentor/mentee pair.

    Args:
        mentor: Mentor profile
        mentee: Mentee profile

    Returns:
        ScoreResult with the weighted 0-100 score and per-dimension breakdown

    Example:
        >>> mentor = UserProfile(id="m", expertise_areas=["python", "ml"])
        >>> mentee = UserProfile(id="e", skills=["ml", "data"])
        >>> calculate_score(mentor, mentee).breakdown.expertise
        33
    """
    breakdown = ScoreBreakdown(
        expertise=expertise_score(mentor, mentee),
        availability=availability_score(mentor, mentee),
        interactions=interaction_score(mentor, mentee),
        priority=priority_score(mentee.priority),
    )

    weighted = (
        breakdown.expertise * SCORE_WEIGHTS["expertise"]
        + breakdown.availability * SCORE_WEIGHTS["availability"]
        + breakdown.interactions * SCORE_WEIGHTS["interactions"]
        + breakdown.priority * SCORE_WEIGHTS["priority"]
    )

    return ScoreResult(score=round_half_up(weighted), breakdown=breakdown)
