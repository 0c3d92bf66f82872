"""Appointment service for business logic."""

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.core.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)
from app.core.identity import Caller, Role
from app.models.appointments import appointments
from app.schemas.appointments import (
    TERMINAL_STATUSES,
    AppointmentCreate,
    AppointmentCreateResponse,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentUpdate,
    AppointmentUpdateResponse,
    CancelOutcome,
)
from app.services import permissions
from app.services.assignment_service import AssignmentService
from app.services.availability_service import AvailabilityService
from app.services.directory_service import DirectoryService
from app.services.projection import (
    appointment_by_id_query,
    appointment_view_query,
    to_create_response,
    to_response,
    to_update_response,
)
from app.services.time_policy import (
    ensure_before_notice_deadline,
    to_utc,
    validate_future,
    window_end,
)

logger = structlog.get_logger(__name__)

_VALID_STATUSES = {status.value for status in AppointmentStatus}


def _clean_text(value: str) -> str | None:
    """Trim free text; blank text clears the field."""
    value = value.strip()
    return value or None


def _normalize_status(value: str) -> AppointmentStatus:
    normalized = value.strip().lower()
    if normalized not in _VALID_STATUSES:
        raise BadRequestException(
            "Invalid status. Allowed values are: pending, confirmed, cancelled, completed"
        )
    return AppointmentStatus(normalized)


class AppointmentService:
    """
    Booking, reading, updating and cancelling appointments.

    Every operation takes the resolved ``Caller``. Write operations run their
    checks and the mutation in the session's transaction and commit once at
    the end; any exception leaves nothing written.
    """

    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        """Initialize service with database session and clock."""
        self.db = db
        self.clock = clock or system_clock
        self.directory = DirectoryService(db)
        self.availability = AvailabilityService(db)
        self.assignment = AssignmentService(db, self.directory, self.availability)

    async def _authorize_identity(self, caller: Caller) -> None:
        if not await self.directory.caller_exists(caller):
            raise ForbiddenException("Access not authorized")

    async def _authorize(self, caller: Caller, appointment: dict, action: str) -> None:
        """
        Check the caller exists and, for doctors and patients, owns the appointment.

        Raises:
            ForbiddenException: Unknown identity or not a party to the appointment
        """
        await self._authorize_identity(caller)

        if permissions.requires_ownership(caller.role):
            owner_column = "doctor_id" if caller.role == Role.DOCTOR else "patient_id"
            if appointment[owner_column] != caller.id:
                raise ForbiddenException(f"You are not authorized to {action} this appointment")

    async def _load(self, appointment_id: UUID, for_update: bool = False) -> dict:
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.db.execute(stmt)
        row = result.mappings().first()
        if not row:
            raise NotFoundException("Appointment not found")
        return dict(row)

    async def _view(self, appointment_id: UUID) -> Any:
        result = await self.db.execute(appointment_by_id_query(appointment_id))
        return result.mappings().one()

    async def list_appointments(self, caller: Caller) -> list[AppointmentResponse]:
        """
        List appointments visible to the caller, earliest first.

        Admins see every appointment; doctors and patients see their own.

        Raises:
            ForbiddenException: If the caller identity does not exist
        """
        await self._authorize_identity(caller)

        stmt = appointment_view_query().order_by(
            appointments.c.scheduled_at.asc(), appointments.c.id
        )
        if caller.role == Role.DOCTOR:
            stmt = stmt.where(appointments.c.doctor_id == caller.id)
        elif caller.role == Role.PATIENT:
            stmt = stmt.where(appointments.c.patient_id == caller.id)

        result = await self.db.execute(stmt)
        return [to_response(row) for row in result.mappings().all()]

    async def get_appointment(self, caller: Caller, appointment_id: UUID) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the caller does not exist or does not own it
        """
        appointment = await self._load(appointment_id)
        await self._authorize(caller, appointment, "view")
        return to_response(await self._view(appointment_id))

    async def create_appointment(
        self,
        caller: Caller,
        data: AppointmentCreate,
    ) -> AppointmentCreateResponse:
        """
        Book an exam for the calling patient.

        The slot is ``[appointment_date, appointment_date + exam duration)``.
        The doctor is the requested one if eligible, otherwise the first
        available doctor on the exam's roster.

        Args:
            caller: Booking patient
            data: Exam, desired start, optional doctor and notes

        Returns:
            Created appointment with status ``pending``

        Raises:
            ForbiddenException: Caller is not a patient, or the patient does not exist
            NotFoundException: Exam missing or inactive, requested doctor missing
            BadRequestException: Date not in the future, requested doctor not qualified
            ConflictException: Patient or doctor already busy, no doctor available
        """
        if not permissions.can_create(caller.role):
            raise ForbiddenException(f"A {caller.role.value} cannot create appointments")
        if not await self.directory.patient_exists(caller.id):
            raise ForbiddenException("Access not authorized")

        exam = await self.directory.get_exam(data.exam_id)
        if exam is None or not exam["is_active"]:
            raise NotFoundException("Exam not found")

        now = self.clock.now()
        scheduled_at = to_utc(data.appointment_date)
        validate_future(scheduled_at, now)
        ends_at = window_end(scheduled_at, exam["duration_minutes"])

        await self.directory.lock_patient(caller.id)
        if await self.availability.is_patient_busy(caller.id, scheduled_at, ends_at):
            raise ConflictException("You already have an overlapping appointment")

        doctor_id = await self.assignment.assign(
            data.exam_id,
            scheduled_at,
            ends_at,
            requested_doctor_id=data.doctor_id,
            exam=exam,
        )

        values = {
            "patient_id": caller.id,
            "doctor_id": doctor_id,
            "exam_id": data.exam_id,
            "scheduled_at": scheduled_at,
            "ends_at": ends_at,
            "duration_minutes": exam["duration_minutes"],
            "status": AppointmentStatus.PENDING.value,
            "reason": _clean_text(data.reason) if data.reason is not None else None,
            "contraindications": (
                _clean_text(data.contraindications)
                if data.contraindications is not None
                else None
            ),
            "created_at": now,
            "updated_at": now,
        }

        try:
            result = await self.db.execute(
                insert(appointments).values(**values).returning(appointments.c.id)
            )
            appointment_id = result.scalar_one()
            row = await self._view(appointment_id)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("The requested time slot is no longer available")

        logger.info(
            "appointment_created",
            appointment_id=str(appointment_id),
            patient_id=str(caller.id),
            doctor_id=str(doctor_id),
            exam_id=str(data.exam_id),
            scheduled_at=scheduled_at.isoformat(),
        )
        return to_create_response(row)

    async def update_appointment(
        self,
        caller: Caller,
        appointment_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentUpdateResponse:
        """
        Update an existing appointment.

        Which fields a caller may change is decided by the permission table;
        a new date is always re-checked for being in the future and for
        doctor and patient overlaps, keeping the stored duration.

        Args:
            caller: Acting admin, doctor or patient
            appointment_id: Appointment ID
            data: Fields to change; null fields are ignored

        Returns:
            Updated appointment

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: Unknown identity or not the owner
            ConflictException: Field outside the role, notice period passed,
                slot taken, or status change out of a terminal status
            BadRequestException: Date not in the future or unknown status
        """
        appointment = await self._load(appointment_id, for_update=True)
        await self._authorize(caller, appointment, "modify")

        changes = data.provided_fields()
        permissions.check_update_fields(caller.role, changes)

        if not changes:
            return to_update_response(await self._view(appointment_id))

        now = self.clock.now()
        values: dict[str, Any] = {}

        if permissions.STATUS in changes:
            new_status = _normalize_status(changes[permissions.STATUS])
            current_status = AppointmentStatus(appointment["status"])
            if current_status in TERMINAL_STATUSES and new_status != current_status:
                raise ConflictException(
                    f"Appointment is {current_status.value} and its status can no longer change"
                )
            values["status"] = new_status.value

        if permissions.SCHEDULED_AT in changes:
            if permissions.is_notice_bound(caller.role, permissions.SCHEDULED_AT):
                ensure_before_notice_deadline(appointment["scheduled_at"], now, "rescheduled")

            scheduled_at = to_utc(changes[permissions.SCHEDULED_AT])
            validate_future(scheduled_at, now)
            ends_at = window_end(scheduled_at, appointment["duration_minutes"])

            await self.directory.lock_patient(appointment["patient_id"])
            await self.directory.lock_doctor(appointment["doctor_id"])
            if await self.availability.is_doctor_busy(
                appointment["doctor_id"], scheduled_at, ends_at, appointment_id
            ):
                raise ConflictException("The doctor is not available at this time")
            if await self.availability.is_patient_busy(
                appointment["patient_id"], scheduled_at, ends_at, appointment_id
            ):
                raise ConflictException("You already have another appointment in this time slot")

            values["scheduled_at"] = scheduled_at
            values["ends_at"] = ends_at

        for field in (permissions.REASON, permissions.CONTRAINDICATIONS):
            if field in changes:
                values[field] = _clean_text(changes[field])

        values["updated_at"] = now

        try:
            await self.db.execute(
                update(appointments).where(appointments.c.id == appointment_id).values(**values)
            )
            row = await self._view(appointment_id)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("The requested time slot is no longer available")

        logger.info(
            "appointment_updated",
            appointment_id=str(appointment_id),
            role=caller.role.value,
            fields=sorted(changes),
        )
        return to_update_response(row)

    async def cancel_appointment(self, caller: Caller, appointment_id: UUID) -> CancelOutcome:
        """
        Cancel an appointment, or delete it if it is already completed.

        Cancellation is a soft delete (status ``cancelled``). Completed
        appointments are removed instead; nothing else is ever hard-deleted.

        Args:
            caller: Acting admin, doctor or patient
            appointment_id: Appointment ID

        Returns:
            Whether the appointment was cancelled or deleted

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: Unknown identity or not the owner
            ConflictException: Already cancelled, or notice period passed
        """
        appointment = await self._load(appointment_id, for_update=True)
        await self._authorize(caller, appointment, "cancel")

        current_status = AppointmentStatus(appointment["status"])
        if current_status == AppointmentStatus.CANCELLED:
            raise ConflictException("Appointment is already cancelled")

        if current_status == AppointmentStatus.COMPLETED:
            await self.db.execute(delete(appointments).where(appointments.c.id == appointment_id))
            await self.db.commit()
            logger.info(
                "appointment_deleted",
                appointment_id=str(appointment_id),
                role=caller.role.value,
            )
            return CancelOutcome.DELETED

        now = self.clock.now()
        if permissions.is_notice_bound(caller.role, permissions.CANCEL):
            ensure_before_notice_deadline(appointment["scheduled_at"], now, "cancelled")

        await self.db.execute(
            update(appointments)
            .where(appointments.c.id == appointment_id)
            .values(status=AppointmentStatus.CANCELLED.value, updated_at=now)
        )
        await self.db.commit()

        logger.info(
            "appointment_cancelled",
            appointment_id=str(appointment_id),
            role=caller.role.value,
        )
        return CancelOutcome.CANCELLED
