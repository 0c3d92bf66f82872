"""Doctor assignment for new bookings."""

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.services.availability_service import AvailabilityService
from app.services.directory_service import DirectoryService

logger = structlog.get_logger(__name__)


class AssignmentService:
    """
    Resolve which doctor performs a booked exam.

    Without a requested doctor the policy is first-fit over the exam's
    qualification roster in association order. It does not balance load
    across doctors.
    """

    def __init__(
        self,
        db: AsyncSession,
        directory: DirectoryService | None = None,
        availability: AvailabilityService | None = None,
    ):
        """Initialize service with database session and collaborators."""
        self.db = db
        self.directory = directory or DirectoryService(db)
        self.availability = availability or AvailabilityService(db)

    async def assign(
        self,
        exam_id: UUID,
        window_start: datetime,
        window_end: datetime,
        requested_doctor_id: UUID | None = None,
        exam: dict | None = None,
    ) -> UUID:
        """
        Pick the doctor for an exam in the given window.

        The chosen doctor's row is locked, so the availability answer holds
        until the surrounding transaction commits.

        Args:
            exam_id: Exam being booked
            window_start: Start of the slot
            window_end: End of the slot (exclusive)
            requested_doctor_id: Doctor asked for by the patient, if any
            exam: Exam row already loaded by the caller; fetched when omitted

        Returns:
            ID of the assigned doctor

        Raises:
            NotFoundException: Exam missing or inactive, requested doctor missing
            BadRequestException: Requested doctor not qualified for the exam
            ConflictException: No qualified doctor, or none available in the window
        """
        if exam is None:
            exam = await self.directory.get_exam(exam_id)
        if exam is None or not exam["is_active"]:
            raise NotFoundException("Exam not found")

        roster = await self.directory.list_qualified_doctor_ids(exam_id)
        if not roster:
            raise ConflictException("No doctor is qualified to perform this exam")

        if requested_doctor_id is not None:
            return await self._check_requested(
                exam_id, requested_doctor_id, window_start, window_end
            )

        for doctor_id in roster:
            await self.directory.lock_doctor(doctor_id)
            if not await self.availability.is_doctor_busy(doctor_id, window_start, window_end):
                logger.debug("doctor_assigned", exam_id=str(exam_id), doctor_id=str(doctor_id))
                return doctor_id

        raise ConflictException("No doctor is available for this exam at the requested time")

    async def _check_requested(
        self,
        exam_id: UUID,
        doctor_id: UUID,
        window_start: datetime,
        window_end: datetime,
    ) -> UUID:
        if not await self.directory.doctor_exists(doctor_id):
            raise NotFoundException("Doctor not found")
        if not await self.directory.is_qualified(doctor_id, exam_id):
            raise BadRequestException("Requested doctor is not qualified for this exam")

        await self.directory.lock_doctor(doctor_id)
        if await self.availability.is_doctor_busy(doctor_id, window_start, window_end):
            raise ConflictException("Requested doctor is not available at this time")
        return doctor_id
