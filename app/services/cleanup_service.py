"""Housekeeping sweep that purges appointments whose slot has passed."""

from datetime import datetime

import structlog
from sqlalchemy import and_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointments import appointments
from app.services.time_policy import to_utc

logger = structlog.get_logger(__name__)


class CleanupService:
    """Removes past, non-cancelled appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def purge_past_appointments(self, now: datetime) -> int:
        """
        Delete every non-cancelled appointment whose slot ended before ``now``.

        Runs as one delete-by-query, so it never acts on a half-written
        booking: in-flight bookings are in the future by construction.

        Args:
            now: Reference instant

        Returns:
            Number of deleted appointments
        """
        logger.info("past_appointments_cleanup_started")

        stmt = delete(appointments).where(
            and_(
                appointments.c.status != "cancelled",
                appointments.c.ends_at < to_utc(now),
            )
        )
        result = await self.db.execute(stmt)
        await self.db.commit()

        count = result.rowcount or 0
        if count:
            logger.info("past_appointments_purged", count=count)
        else:
            logger.info("no_past_appointments_found")
        return count
