"""Unit tests for the reaper schedule."""

from apscheduler.triggers.cron import CronTrigger

from app.core.scheduler import REAPER_JOB_ID, create_scheduler, run_reaper_job


def test_reaper_job_registered():
    scheduler = create_scheduler("15 2 * * *", "UTC")
    job = scheduler.get_job(REAPER_JOB_ID)

    assert job is not None
    assert job.func is run_reaper_job
    assert isinstance(job.trigger, CronTrigger)
    assert job.max_instances == 1
    assert job.coalesce is True


def test_custom_schedule():
    scheduler = create_scheduler("*/5 * * * *", "Asia/Jakarta")
    trigger = scheduler.get_job(REAPER_JOB_ID).trigger
    assert str(trigger.timezone) == "Asia/Jakarta"
    assert "minute='*/5'" in str(trigger)
