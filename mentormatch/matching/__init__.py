"""Matching engine: scoring, suggestion generation, capacity and lifecycle.

- calculate_score: pure compatibility scoring of a mentor/mentee pair
- SuggestionGenerator: ranked, deduplicated suggestion pools with TTL
- ensure_mentor_capacity: mentor capacity check
- MatchLifecycleManager: mutual-consent acceptance state machine
- MatchQueryService: read-side listings and summaries
"""

from .capacity import CapacityStatus, ensure_mentor_capacity, mentor_capacity
from .exceptions import (
    MatchError,
    MatchExpired,
    MatchNotActionable,
    MatchNotFound,
    MentorCapacityReached,
    MentorNotAvailable,
)
from .generator import SuggestionGenerator, rank_candidates
from .lifecycle import MatchDecision, MatchLifecycleManager
from .queries import (
    CapacitySummary,
    MatchQueryService,
    MenteeQueueSummary,
    summarize_mentee_queue,
)
from .scoring import SCORE_WEIGHTS, ScoreResult, calculate_score

__all__ = [
    "calculate_score",
    "ScoreResult",
    "SCORE_WEIGHTS",
    "SuggestionGenerator",
    "rank_candidates",
    "CapacityStatus",
    "ensure_mentor_capacity",
    "mentor_capacity",
    "MatchLifecycleManager",
    "MatchDecision",
    "MatchQueryService",
    "CapacitySummary",
    "MenteeQueueSummary",
    "summarize_mentee_queue",
    "MatchError",
    "MatchNotFound",
    "MentorNotAvailable",
    "MatchNotActionable",
    "MatchExpired",
    "MentorCapacityReached",
]
