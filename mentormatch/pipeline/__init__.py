"""Suggestion refresh orchestration."""

from .models import MentorRefreshStats, RefreshRunResult
from .runner import SuggestionRefreshJob

__all__ = [
    "SuggestionRefreshJob",
    "RefreshRunResult",
    "MentorRefreshStats",
]
