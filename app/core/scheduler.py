"""Background scheduler for housekeeping jobs."""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from app.core.clock import Clock, system_clock
from app.database import AsyncSessionLocal
from app.services.cleanup_service import CleanupService

logger = structlog.get_logger(__name__)

CLEANUP_JOB_ID = "purge_past_appointments"


async def run_cleanup(clock: Clock = system_clock) -> int:
    """Run the past-appointment sweep in its own session."""
    async with AsyncSessionLocal() as session:
        try:
            return await CleanupService(session).purge_past_appointments(clock.now())
        except Exception:
            await session.rollback()
            logger.error("past_appointments_cleanup_failed", exc_info=True)
            raise


def create_scheduler() -> AsyncIOScheduler:
    """Build the scheduler with the daily cleanup job registered."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_cleanup,
        CronTrigger(
            hour=settings.cleanup_cron_hour,
            minute=settings.cleanup_cron_minute,
            timezone="UTC",
        ),
        id=CLEANUP_JOB_ID,
        name="Purge past appointments",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler
