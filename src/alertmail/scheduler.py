"""
Scheduled digest job.

Fires the pipeline (digest builder -> dispatcher) on a crontab schedule for
a fixed daily window.
"""

import logging
import sqlite3
import time
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from alertmail.alerting import DispatchError, NotificationDispatcher
from alertmail.config import ScheduleSettings
from alertmail.database import Database
from alertmail.digest import build_digests
from alertmail.models import DispatchSummary

logger = logging.getLogger(__name__)

JOB_ID = "alert_digest"


def compute_window(settings: ScheduleSettings, now: datetime) -> tuple[datetime, datetime]:
    """
    Today's query window from the configured hours and minutes.

    An end earlier than the start means the window crosses midnight, so it
    starts on the previous day.
    """
    start = now.replace(
        hour=settings.start_hour, minute=settings.start_minute, second=0, microsecond=0
    )
    end = now.replace(hour=settings.end_hour, minute=settings.end_minute, second=0, microsecond=0)
    if end < start:
        start -= timedelta(days=1)
    return start, end


class DigestJob:
    """One run of the digest pipeline."""

    def __init__(self, db: Database, dispatcher: NotificationDispatcher, settings: ScheduleSettings):
        self.db = db
        self.dispatcher = dispatcher
        self.settings = settings

    def run(
        self,
        now: datetime | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> DispatchSummary | None:
        """
        Build and dispatch digests for one window.

        Args:
            now: Reference time (defaults to the current time)
            start: Window start override
            end: Window end override

        Returns:
            DispatchSummary, or None if the window had no alerts

        Raises:
            DispatchError: If any notification failed to send
        """
        now = now or datetime.now()
        default_start, default_end = compute_window(self.settings, now)
        start = start or default_start
        end = end or default_end

        logger.info(f"Digest run for window {start} - {end}")
        digests = build_digests(self.db, start, end)
        if not digests:
            logger.info("No alerts in window, nothing to send")
            return None

        return self.dispatcher.dispatch_all(digests, now=now)

    def fire(self) -> None:
        """Scheduler entry point: run once and log the outcome."""
        started = time.monotonic()
        try:
            summary = self.run()
        except DispatchError as e:
            duration = time.monotonic() - started
            logger.error(f"Digest run finished with failures in {duration:.2f}s: {e}")
            return
        except sqlite3.Error as e:
            duration = time.monotonic() - started
            logger.error(f"Digest run failed reading alerts after {duration:.2f}s: {e}")
            return

        duration = time.monotonic() - started
        if summary is None:
            logger.info(f"Digest run complete in {duration:.2f}s: no alerts")
        else:
            logger.info(
                f"Digest run complete in {duration:.2f}s: "
                f"{summary.success_count} notification(s) sent"
            )


def create_scheduler(settings: ScheduleSettings, job: DigestJob) -> BackgroundScheduler | None:
    """
    Create the background scheduler for the digest job.

    Returns:
        An unstarted scheduler, or None when the job is disabled
    """
    if not settings.enabled:
        logger.info("Digest schedule disabled")
        return None

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        job.fire,
        CronTrigger.from_crontab(settings.cron),
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    logger.info(f"Digest job scheduled: {settings.cron}, window {settings.window_label()}")
    return scheduler
