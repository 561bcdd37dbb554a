"""Scheduler service for the daily and weekly digest runs."""

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from listing_alerts.config.models import DigestConfig
from listing_alerts.domain.models import AlertFrequency
from listing_alerts.logging import get_logger

logger = get_logger(__name__, component="scheduler")

DIGEST_FREQUENCIES = (AlertFrequency.DAILY, AlertFrequency.WEEKLY)

# A digest delayed by up to an hour (e.g. host asleep) still runs
MISFIRE_GRACE_SECONDS = 3600


def job_id_for(frequency: AlertFrequency) -> str:
    return f"digest-{frequency.value}"


class SchedulerService:
    """
    Wraps APScheduler to fire one cron job per digest frequency.

    Uses BackgroundScheduler so the main thread stays free to handle signals
    and coordinate shutdown. Cron expressions are evaluated in UTC.
    """

    def __init__(
        self,
        digest_callable: Callable[[AlertFrequency], Any],
        digest_config: Optional[DigestConfig] = None,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Args:
            digest_callable: Called with the frequency on each tick (e.g. DigestScheduler.run_digest)
            digest_config: Cron schedules per frequency
            shutdown_event: Optional event set on shutdown for coordination
        """
        self.digest_callable = digest_callable
        self.digest_config = digest_config or DigestConfig()
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": MISFIRE_GRACE_SECONDS,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register both digest jobs and start the scheduler thread."""
        for frequency in DIGEST_FREQUENCIES:
            expression = self.digest_config.schedule_for(frequency)
            self.scheduler.add_job(
                func=self.digest_callable,
                trigger=CronTrigger.from_crontab(expression, timezone=timezone.utc),
                args=[frequency],
                id=job_id_for(frequency),
                name=f"{frequency.value.capitalize()} digest",
                replace_existing=True,
            )

        self.scheduler.start()

        for frequency in DIGEST_FREQUENCIES:
            next_run = self.get_next_run_time(frequency)
            logger.info(
                f"Scheduled {frequency.value} digest "
                f"({self.digest_config.schedule_for(frequency)})",
                extra={
                    "event": "scheduler.started",
                    "frequency": frequency.value,
                    "next_run_time": next_run.isoformat() if next_run else None,
                },
            )

    def shutdown(self, wait: bool = False) -> None:
        """
        Args:
            wait: If True, wait for a running digest to finish before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={"event": "scheduler.stopping", "wait_for_jobs": wait},
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self, frequency: AlertFrequency) -> Any:
        """Run one digest synchronously in the calling thread and return its result."""
        logger.info(
            f"Triggering immediate {AlertFrequency(frequency).value} digest",
            extra={"event": "scheduler.trigger_now", "frequency": AlertFrequency(frequency).value},
        )
        return self.digest_callable(AlertFrequency(frequency))

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_time(self, frequency: AlertFrequency) -> Optional[datetime]:
        """Next fire time of the frequency's job, or None when not scheduled."""
        job = self.scheduler.get_job(job_id_for(AlertFrequency(frequency)))
        return job.next_run_time if job else None
