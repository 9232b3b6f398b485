"""Tests for the scheduled digest job."""

import logging
import sqlite3
from datetime import datetime
from unittest.mock import Mock, patch

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from alertmail.alerting import DispatchError, NotificationDispatcher, TransportResult
from alertmail.config import ScheduleSettings
from alertmail.database import Database
from alertmail.directory import RecipientResolver
from alertmail.models import DispatchSummary
from alertmail.scheduler import JOB_ID, DigestJob, compute_window, create_scheduler


class TestComputeWindow:
    """Test compute_window."""

    def test_default_window(self, today: datetime):
        start, end = compute_window(ScheduleSettings(), today)

        assert start == datetime(2024, 1, 15, 19, 0, 0)
        assert end == datetime(2024, 1, 15, 22, 0, 0)

    def test_seconds_and_microseconds_cleared(self):
        now = datetime(2024, 1, 15, 22, 0, 37, 999)
        settings = ScheduleSettings(start_hour=8, start_minute=30, end_hour=17, end_minute=45)

        start, end = compute_window(settings, now)

        assert start == datetime(2024, 1, 15, 8, 30, 0)
        assert end == datetime(2024, 1, 15, 17, 45, 0)

    def test_window_crossing_midnight_starts_previous_day(self):
        settings = ScheduleSettings(start_hour=22, end_hour=6)

        start, end = compute_window(settings, datetime(2024, 1, 15, 6, 5))

        assert start == datetime(2024, 1, 14, 22, 0, 0)
        assert end == datetime(2024, 1, 15, 6, 0, 0)


class TestDigestJob:
    """Test DigestJob.run and DigestJob.fire."""

    def test_run_with_no_alerts(self, db: Database, today: datetime):
        dispatcher = Mock()
        job = DigestJob(db, dispatcher, ScheduleSettings())

        assert job.run(now=today) is None
        dispatcher.dispatch_all.assert_not_called()

    def test_run_end_to_end(
        self, db: Database, resolver: RecipientResolver, ok_transport, today: datetime
    ):
        db.insert_alert("disk full", "alice", datetime(2024, 1, 15, 20, 0))
        db.insert_alert("cpu high", "alice", datetime(2024, 1, 15, 21, 0))
        db.insert_alert("mem low", "zz99", datetime(2024, 1, 15, 19, 30))
        db.insert_alert("outside window", "bob", datetime(2024, 1, 15, 12, 0))
        job = DigestJob(db, NotificationDispatcher(resolver, ok_transport), ScheduleSettings())

        summary = job.run(now=today)

        assert summary.success_count == 2
        assert summary.unresolved_tokens == ["zz99"]
        recipients = [c.args[0] for c in ok_transport.send.call_args_list]
        assert recipients == [["alice@co.com"], ["operator@example.com"]]
        alice_body = ok_transport.send.call_args_list[0].args[2]
        assert "disk full" in alice_body
        assert "cpu high" in alice_body

    def test_run_with_explicit_window(self, db: Database, today: datetime):
        db.insert_alert("morning", "alice", datetime(2024, 1, 15, 9, 0))
        dispatcher = Mock()
        dispatcher.dispatch_all.return_value = DispatchSummary(success_count=1)
        job = DigestJob(db, dispatcher, ScheduleSettings())

        summary = job.run(
            now=today, start=datetime(2024, 1, 15, 8, 0), end=datetime(2024, 1, 15, 10, 0)
        )

        assert summary.success_count == 1
        [digests] = dispatcher.dispatch_all.call_args.args
        assert [d.recipient for d in digests] == ["alice"]

    def test_run_propagates_dispatch_error(self, db: Database, resolver, today: datetime):
        db.insert_alert("disk full", "alice", datetime(2024, 1, 15, 20, 0))
        transport = Mock()
        transport.send.return_value = TransportResult(False, "down")
        job = DigestJob(db, NotificationDispatcher(resolver, transport), ScheduleSettings())

        with pytest.raises(DispatchError):
            job.run(now=today)

    def test_fire_logs_dispatch_error(self, caplog):
        job = DigestJob(Mock(), Mock(), ScheduleSettings())

        with patch.object(job, "run", side_effect=DispatchError(DispatchSummary(failure_count=1))):
            with caplog.at_level(logging.ERROR):
                job.fire()

        assert "finished with failures" in caplog.text

    def test_fire_logs_store_error(self, caplog):
        job = DigestJob(Mock(), Mock(), ScheduleSettings())

        with patch.object(job, "run", side_effect=sqlite3.OperationalError("locked")):
            with caplog.at_level(logging.ERROR):
                job.fire()

        assert "locked" in caplog.text

    def test_fire_logs_success(self, caplog):
        job = DigestJob(Mock(), Mock(), ScheduleSettings())

        with patch.object(job, "run", return_value=DispatchSummary(success_count=3)):
            with caplog.at_level(logging.INFO):
                job.fire()

        assert "3 notification(s) sent" in caplog.text


class TestCreateScheduler:
    """Test create_scheduler."""

    def test_disabled_returns_none(self):
        job = DigestJob(Mock(), Mock(), ScheduleSettings(enabled=False))

        assert create_scheduler(job.settings, job) is None

    def test_registers_cron_job(self):
        settings = ScheduleSettings(cron="30 21 * * 1-5")
        job = DigestJob(Mock(), Mock(), settings)

        scheduler = create_scheduler(settings, job)

        assert isinstance(scheduler, BackgroundScheduler)
        assert not scheduler.running
        [registered] = scheduler.get_jobs()
        assert registered.id == JOB_ID
        assert registered.max_instances == 1
        assert registered.coalesce is True
        assert registered.func == job.fire
