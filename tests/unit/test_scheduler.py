"""Tests unitaires des tâches planifiées (APScheduler)."""

from unittest.mock import MagicMock, patch

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core import scheduler as scheduler_module
from app.core.scheduler import (
    APPOINTMENT_AUTOCOMPLETE_JOB_ID,
    FLAG_DETECTION_JOB_ID,
    register_jobs,
    start_scheduler,
    stop_scheduler,
)


class TestRegisterJobs:
    def test_jobs_registered(self):
        target = AsyncIOScheduler(timezone="UTC")

        register_jobs(target)

        jobs = {job.id: job for job in target.get_jobs()}
        assert set(jobs) == {FLAG_DETECTION_JOB_ID, APPOINTMENT_AUTOCOMPLETE_JOB_ID}
        assert "hour='3'" in str(jobs[FLAG_DETECTION_JOB_ID].trigger)
        assert jobs[APPOINTMENT_AUTOCOMPLETE_JOB_ID].trigger.interval.total_seconds() == 60
        assert all(job.max_instances == 1 for job in jobs.values())


class TestStartStop:
    def test_disabled(self):
        with patch.object(scheduler_module, "settings") as mock_settings:
            mock_settings.SCHEDULER_ENABLED = False
            assert start_scheduler() is False

    def test_start(self):
        mock_scheduler = MagicMock()
        mock_scheduler.running = False

        with (
            patch.object(scheduler_module, "settings") as mock_settings,
            patch.object(scheduler_module, "scheduler", mock_scheduler),
            patch.object(scheduler_module, "register_jobs") as mock_register,
        ):
            mock_settings.SCHEDULER_ENABLED = True
            assert start_scheduler() is True

        mock_register.assert_called_once_with(mock_scheduler)
        mock_scheduler.start.assert_called_once()

    def test_stop_only_when_running(self):
        mock_scheduler = MagicMock()
        mock_scheduler.running = False

        with patch.object(scheduler_module, "scheduler", mock_scheduler):
            stop_scheduler()
            mock_scheduler.shutdown.assert_not_called()

            mock_scheduler.running = True
            stop_scheduler()

        mock_scheduler.shutdown.assert_called_once_with(wait=False)
