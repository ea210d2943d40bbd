"""Scheduler service for periodic suggestion regeneration."""

import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from mentormatch.logging import get_logger

logger = get_logger(__name__, component="scheduler")

JOB_ID = "suggestion-refresh"


class SchedulerService:
    """
    Wraps APScheduler to trigger the refresh job at a fixed interval.

    The BackgroundScheduler runs jobs on a worker thread so the main thread
    stays free to handle signals and coordinate shutdown.
    """

    def __init__(
        self,
        job_callable: Callable[[], object],
        interval_seconds: int,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            job_callable: Function to call on each run (e.g. refresh_job.run_once)
            interval_seconds: Interval between runs in seconds
            shutdown_event: Optional event set on shutdown for coordination
        """
        self.job_callable = job_callable
        self.interval_seconds = interval_seconds
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,  # A slow pass blocks the next tick
                "coalesce": True,  # Missed ticks collapse into one run
                "misfire_grace_time": interval_seconds,  # Late runs still fire within one interval
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register the refresh job and start the scheduler.

        The first run fires immediately; later runs follow the interval.
        """
        trigger = IntervalTrigger(seconds=self.interval_seconds, timezone=timezone.utc)

        # First pass on startup rather than one interval later
        next_run = datetime.now(timezone.utc)
        self.scheduler.add_job(
            func=self.job_callable,
            trigger=trigger,
            id=JOB_ID,
            name="Mentor suggestion refresh",
            replace_existing=True,
            next_run_time=next_run,
        )

        # Spawns the worker thread; returns immediately
        self.scheduler.start()

        logger.info(
            f"Scheduler started with interval: {self.interval_seconds} seconds",
            extra={
                "event": "scheduler.started",
                "interval_seconds": self.interval_seconds,
                "next_run_time": next_run.isoformat(),
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """Stop the scheduler and release anyone waiting on the shutdown event.

        Args:
            wait: Block until a run already in progress finishes
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        # Unblocks the main thread waiting in daemon mode
        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self) -> None:
        """Run the job synchronously in the calling thread."""
        logger.info("Triggering immediate refresh run", extra={"event": "scheduler.trigger_now"})
        self.job_callable()

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self) -> Optional[datetime]:
        """Next scheduled fire time, or None before start()."""
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None
