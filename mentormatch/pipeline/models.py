"""Data models for suggestion refresh runs."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class MentorRefreshStats:
    """
    Outcome of regenerating suggestions for one mentor.

    Attributes:
        mentor_id: Mentor the suggestions were generated for
        generated_count: Number of suggestions upserted
        had_errors: Whether generation failed for this mentor
        error_message: Failure description, if any
    """

    mentor_id: str
    generated_count: int = 0
    had_errors: bool = False
    error_message: Optional[str] = None


@dataclass
class RefreshRunResult:
    """
    Aggregate results from one suggestion refresh run.

    Attributes:
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
        total_duration_seconds: Wall-clock duration of the run
        mentor_stats: Per-mentor outcomes
        total_generated: Suggestions upserted across all mentors
        total_errors: Mentors whose generation failed
        had_errors: Whether any mentor failed
        skipped: Whether the run was skipped because another was in progress
    """

    run_started_at: datetime
    run_finished_at: datetime
    total_duration_seconds: float = 0.0
    mentor_stats: List[MentorRefreshStats] = field(default_factory=list)
    total_generated: int = 0
    total_errors: int = 0
    had_errors: bool = False
    skipped: bool = False

    def __post_init__(self):
        if self.mentor_stats:
            self.total_generated = sum(s.generated_count for s in self.mentor_stats)
            self.total_errors = sum(1 for s in self.mentor_stats if s.had_errors)
            self.had_errors = self.total_errors > 0

        if self.total_duration_seconds == 0.0:
            delta = self.run_finished_at - self.run_started_at
            self.total_duration_seconds = delta.total_seconds()

    @property
    def mentor_count(self) -> int:
        return len(self.mentor_stats)
