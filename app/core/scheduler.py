"""Background scheduling of the trash reaper (APScheduler, cron trigger)."""

from datetime import timedelta
from functools import lru_cache
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from app.core.logging import get_logger
from app.database import AsyncSessionLocal
from app.services.oss import ConfigMissing, get_oss_service, get_storage_config
from app.services.oss.config import normalize_prefix
from app.services.reaper_service import Reaper

logger = get_logger(__name__)

REAPER_JOB_ID = "trash_reaper"


@lru_cache
def get_reaper() -> Reaper:
    """
    Process-wide reaper. Scheduled and manual runs share it, so its lock
    keeps them from overlapping.
    """
    try:
        config = get_storage_config()
        store = get_oss_service()
        retention, trash_prefix, dry_run = config.retention, config.trash_prefix, config.dry_run
    except ConfigMissing as e:
        logger.warning("Reaper running without object storage", extra={"error": str(e)})
        store = None
        retention = timedelta(days=settings.RETENTION_DAYS)
        trash_prefix = normalize_prefix(settings.REAPER_PREFIX)
        dry_run = settings.DRY_RUN
    return Reaper(
        store,
        AsyncSessionLocal,
        settings.reaper_tables,
        retention=retention,
        trash_prefix=trash_prefix,
        dry_run=dry_run,
    )


async def run_reaper_job() -> None:
    await get_reaper().run()


def create_scheduler(schedule: Optional[str] = None, timezone: Optional[str] = None) -> AsyncIOScheduler:
    schedule = schedule or settings.CRON_SCHEDULE
    scheduler = AsyncIOScheduler(timezone=timezone or settings.CRON_TIMEZONE)
    scheduler.add_job(
        func=run_reaper_job,
        trigger=CronTrigger.from_crontab(schedule, timezone=timezone or settings.CRON_TIMEZONE),
        id=REAPER_JOB_ID,
        name="Purge expired trash objects and soft-deleted rows",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Reaper scheduled", extra={"schedule": schedule})
    return scheduler
