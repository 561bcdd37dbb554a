"""Cron scheduling of the daily and weekly digest runs."""

from .service import SchedulerService

__all__ = [
    "SchedulerService",
]
