"""Scheduling for periodic suggestion regeneration."""

from .service import SchedulerService

__all__ = [
    "SchedulerService",
]
