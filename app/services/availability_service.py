"""Slot availability checks for doctors and patients."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import and_, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.appointments import appointments
from app.services.time_policy import to_utc


class Subject(str, Enum):
    """Whose calendar an overlap check runs against."""

    DOCTOR = "doctor"
    PATIENT = "patient"


_SUBJECT_COLUMNS = {
    Subject.DOCTOR: appointments.c.doctor_id,
    Subject.PATIENT: appointments.c.patient_id,
}


class AvailabilityService:
    """Read-only overlap queries over non-cancelled appointments."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def is_overlapping(
        self,
        subject: Subject,
        subject_id: UUID,
        window_start: datetime,
        window_end: datetime,
        exclude_appointment_id: UUID | None = None,
    ) -> bool:
        """
        Check whether the subject already has an appointment in the window.

        Windows are half-open, so back-to-back appointments do not overlap:
        ``existing.start < window_end AND existing.end > window_start``.

        Args:
            subject: Doctor or patient calendar
            subject_id: ID of the doctor or patient
            window_start: Start of the requested window
            window_end: End of the requested window (exclusive)
            exclude_appointment_id: Appointment left out of the comparison
                (the one being rescheduled)

        Returns:
            True if an overlapping non-cancelled appointment exists
        """
        conditions = [
            _SUBJECT_COLUMNS[subject] == subject_id,
            appointments.c.status != "cancelled",
            appointments.c.scheduled_at < to_utc(window_end),
            appointments.c.ends_at > to_utc(window_start),
        ]
        if exclude_appointment_id is not None:
            conditions.append(appointments.c.id != exclude_appointment_id)

        stmt = select(exists().where(and_(*conditions)))
        result = await self.db.execute(stmt)
        return bool(result.scalar())

    async def is_doctor_busy(
        self,
        doctor_id: UUID,
        window_start: datetime,
        window_end: datetime,
        exclude_appointment_id: UUID | None = None,
    ) -> bool:
        return await self.is_overlapping(
            Subject.DOCTOR, doctor_id, window_start, window_end, exclude_appointment_id
        )

    async def is_patient_busy(
        self,
        patient_id: UUID,
        window_start: datetime,
        window_end: datetime,
        exclude_appointment_id: UUID | None = None,
    ) -> bool:
        return await self.is_overlapping(
            Subject.PATIENT, patient_id, window_start, window_end, exclude_appointment_id
        )
