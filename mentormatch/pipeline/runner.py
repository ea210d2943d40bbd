"""Suggestion refresh job: regenerate suggestions for one or all mentors."""

import threading
from typing import Any, Dict, List, Optional
from uuid import uuid4

from mentormatch.logging import get_logger
from mentormatch.logging.context import log_context
from mentormatch.matching.exceptions import MatchError
from mentormatch.matching.generator import SuggestionGenerator
from mentormatch.persistence.exceptions import PersistenceError
from mentormatch.utils.timestamps import utc_now

from .models import MentorRefreshStats, RefreshRunResult

logger = get_logger(__name__, component="pipeline")


class SuggestionRefreshJob:
    """
    Runs suggestion generation as a single guarded pass.

    Overlapping runs (e.g. a scheduled tick while a manual run is still going)
    are skipped rather than queued.
    """

    def __init__(self, generator: SuggestionGenerator, limit: Optional[int] = None):
        """
        Args:
            generator: Suggestion generator to drive
            limit: Suggestions per mentor (generator default when None)
        """
        self.generator = generator
        self.limit = limit
        self._lock = threading.Lock()

    def run_once(self, mentor_id: Optional[str] = None) -> RefreshRunResult:
        """
        Regenerate suggestions for ``mentor_id``, or for every approved mentor.

        Per-mentor failures are captured in the result, never raised.

        Returns:
            RefreshRunResult with per-mentor stats
        """
        run_started_at = utc_now()
        run_id = uuid4().hex

        if not self._lock.acquire(blocking=False):
            with log_context(run_id=run_id):
                logger.warning(
                    "Refresh run skipped: previous run still in progress",
                    extra={"event": "refresh.run.skipped", "reason": "lock_held"},
                )
            return RefreshRunResult(
                run_started_at=run_started_at,
                run_finished_at=utc_now(),
                skipped=True,
            )

        try:
            with log_context(run_id=run_id):
                logger.info(
                    "Refresh run started",
                    extra={
                        "event": "refresh.run.started",
                        "scope": mentor_id or "all",
                        "limit": self.limit,
                    },
                )

                if mentor_id:
                    stats = [self._refresh_single(mentor_id)]
                else:
                    summaries = self.generator.generate_suggestions_for_all_mentors(
                        limit=self.limit
                    )
                    stats = _stats_from_summaries(summaries)

                result = RefreshRunResult(
                    run_started_at=run_started_at,
                    run_finished_at=utc_now(),
                    mentor_stats=stats,
                )

                logger.info(
                    "Refresh run completed",
                    extra={
                        "event": "refresh.run.completed",
                        "duration_ms": int(result.total_duration_seconds * 1000),
                        "mentor_count": result.mentor_count,
                        "total_generated": result.total_generated,
                        "total_errors": result.total_errors,
                        "had_errors": result.had_errors,
                    },
                )
                return result

        finally:
            self._lock.release()

    def _refresh_single(self, mentor_id: str) -> MentorRefreshStats:
        try:
            requests = self.generator.generate_suggestions_for_mentor(mentor_id, limit=self.limit)
        except (MatchError, PersistenceError) as e:
            logger.error(
                f"Refresh failed for mentor {mentor_id}: {e}",
                extra={
                    "event": "refresh.mentor.failed",
                    "mentor_id": mentor_id,
                    "error_type": type(e).__name__,
                },
            )
            return MentorRefreshStats(
                mentor_id=mentor_id, had_errors=True, error_message=str(e)
            )
        return MentorRefreshStats(mentor_id=mentor_id, generated_count=len(requests))


def _stats_from_summaries(summaries: List[Dict[str, Any]]) -> List[MentorRefreshStats]:
    stats = []
    for summary in summaries:
        if "error" in summary:
            stats.append(
                MentorRefreshStats(
                    mentor_id=summary["mentor_id"],
                    had_errors=True,
                    error_message=summary["error"],
                )
            )
        else:
            stats.append(
                MentorRefreshStats(
                    mentor_id=summary["mentor_id"],
                    generated_count=summary.get("generated", 0),
                )
            )
    return stats
