"""Tests for appointment lifecycle rules at the service layer."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.core.exceptions import BadRequestException, ConflictException, ForbiddenException
from app.core.identity import Caller
from app.models import appointments
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
    CancelOutcome,
)
from app.services.appointment_service import AppointmentService
from app.services.availability_service import AvailabilityService
from app.services.directory_service import DirectoryService
from tests.conftest import NOW, SLOT, create_appointment

NOTICE = timedelta(days=2)
ONE_SECOND = timedelta(seconds=1)


@pytest.fixture
def service(db_session, clock):
    return AppointmentService(db_session, clock)


@pytest.fixture
async def appointment_id(db_session, patient_id, doctor_ids, exam_id):
    return await create_appointment(db_session, patient_id, doctor_ids[0], exam_id, SLOT)


class TestNoticePeriod:
    @pytest.mark.asyncio
    async def test_patient_reschedule_at_deadline_conflicts(
        self, service, clock, appointment_id, patient_id
    ):
        clock.set(SLOT - NOTICE)
        update = AppointmentUpdate(appointment_date=SLOT + timedelta(days=7))

        with pytest.raises(ConflictException):
            await service.update_appointment(Caller.patient(patient_id), appointment_id, update)

    @pytest.mark.asyncio
    async def test_patient_reschedule_just_before_deadline_succeeds(
        self, service, clock, appointment_id, patient_id
    ):
        clock.set(SLOT - NOTICE - ONE_SECOND)
        new_start = SLOT + timedelta(days=7)

        result = await service.update_appointment(
            Caller.patient(patient_id),
            appointment_id,
            AppointmentUpdate(appointment_date=new_start),
        )

        assert result.appointment_date == new_start

    @pytest.mark.asyncio
    async def test_patient_cancel_at_deadline_conflicts(
        self, service, clock, appointment_id, patient_id
    ):
        clock.set(SLOT - NOTICE)

        with pytest.raises(ConflictException):
            await service.cancel_appointment(Caller.patient(patient_id), appointment_id)

    @pytest.mark.asyncio
    async def test_patient_cancel_just_before_deadline_succeeds(
        self, service, clock, appointment_id, patient_id
    ):
        clock.set(SLOT - NOTICE - ONE_SECOND)

        outcome = await service.cancel_appointment(Caller.patient(patient_id), appointment_id)

        assert outcome == CancelOutcome.CANCELLED

    @pytest.mark.asyncio
    async def test_admin_and_doctor_are_not_bound_by_notice(
        self, service, clock, db_session, admin_id, patient_id, doctor_ids, exam_id
    ):
        clock.set(SLOT - timedelta(hours=1))
        other_slot = SLOT + timedelta(hours=2)
        second = await create_appointment(
            db_session, patient_id, doctor_ids[1], exam_id, other_slot
        )
        first = await create_appointment(
            db_session, patient_id, doctor_ids[0], exam_id, SLOT
        )

        result = await service.update_appointment(
            Caller.admin(admin_id),
            first,
            AppointmentUpdate(appointment_date=SLOT + timedelta(minutes=30)),
        )
        assert result.appointment_date == SLOT + timedelta(minutes=30)

        outcome = await service.cancel_appointment(Caller.doctor(doctor_ids[1]), second)
        assert outcome == CancelOutcome.CANCELLED


class TestStatusChanges:
    @pytest.mark.asyncio
    async def test_status_is_normalized(self, service, appointment_id, doctor_ids):
        result = await service.update_appointment(
            Caller.doctor(doctor_ids[0]),
            appointment_id,
            AppointmentUpdate(status="  Confirmed "),
        )

        assert result.status == AppointmentStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_unknown_status_is_rejected(self, service, appointment_id, doctor_ids):
        with pytest.raises(BadRequestException):
            await service.update_appointment(
                Caller.doctor(doctor_ids[0]),
                appointment_id,
                AppointmentUpdate(status="rescheduled"),
            )

    @pytest.mark.asyncio
    async def test_terminal_status_cannot_change(
        self, service, db_session, admin_id, patient_id, doctor_ids, exam_id
    ):
        completed = await create_appointment(
            db_session, patient_id, doctor_ids[0], exam_id, SLOT, status="completed"
        )
        admin = Caller.admin(admin_id)

        with pytest.raises(ConflictException):
            await service.update_appointment(admin, completed, AppointmentUpdate(status="pending"))

        result = await service.update_appointment(
            admin, completed, AppointmentUpdate(status="completed")
        )
        assert result.status == AppointmentStatus.COMPLETED


class TestReschedule:
    @pytest.mark.asyncio
    async def test_reschedule_onto_busy_doctor_conflicts(
        self,
        service,
        db_session,
        admin_id,
        appointment_id,
        other_patient_id,
        doctor_ids,
        exam_id,
    ):
        later = SLOT + timedelta(hours=3)
        await create_appointment(db_session, other_patient_id, doctor_ids[0], exam_id, later)

        with pytest.raises(ConflictException):
            await service.update_appointment(
                Caller.admin(admin_id),
                appointment_id,
                AppointmentUpdate(appointment_date=later + timedelta(minutes=10)),
            )

    @pytest.mark.asyncio
    async def test_reschedule_overlapping_its_own_slot_succeeds(
        self, service, appointment_id, patient_id
    ):
        shifted = SLOT + timedelta(minutes=10)

        result = await service.update_appointment(
            Caller.patient(patient_id),
            appointment_id,
            AppointmentUpdate(appointment_date=shifted),
        )

        assert result.appointment_date == shifted

    @pytest.mark.asyncio
    async def test_reschedule_into_the_past_is_rejected(
        self, service, admin_id, appointment_id
    ):
        with pytest.raises(BadRequestException):
            await service.update_appointment(
                Caller.admin(admin_id),
                appointment_id,
                AppointmentUpdate(appointment_date=NOW - timedelta(minutes=1)),
            )

    @pytest.mark.asyncio
    async def test_legacy_row_without_duration_uses_fallback(
        self, service, db_session, admin_id, patient_id, doctor_ids, exam_id
    ):
        legacy = await create_appointment(
            db_session, patient_id, doctor_ids[0], exam_id, SLOT, duration_minutes=None
        )
        new_start = SLOT + timedelta(days=1)

        await service.update_appointment(
            Caller.admin(admin_id), legacy, AppointmentUpdate(appointment_date=new_start)
        )

        busy = await service.availability.is_doctor_busy(
            doctor_ids[0], new_start + timedelta(minutes=29), new_start + timedelta(hours=1)
        )
        free = await service.availability.is_doctor_busy(
            doctor_ids[0], new_start + timedelta(minutes=30), new_start + timedelta(hours=1)
        )
        assert busy
        assert not free


class TestTextFields:
    @pytest.mark.asyncio
    async def test_reason_is_trimmed_and_blank_clears(self, service, appointment_id, patient_id):
        caller = Caller.patient(patient_id)

        result = await service.update_appointment(
            caller, appointment_id, AppointmentUpdate(reason="  Headache  ")
        )
        assert result.reason == "Headache"

        result = await service.update_appointment(
            caller, appointment_id, AppointmentUpdate(reason="   ")
        )
        assert result.reason is None


class TestOwnership:
    @pytest.mark.asyncio
    async def test_other_patient_cannot_cancel(self, service, appointment_id, other_patient_id):
        with pytest.raises(ForbiddenException):
            await service.cancel_appointment(Caller.patient(other_patient_id), appointment_id)

    @pytest.mark.asyncio
    async def test_other_doctor_cannot_update(self, service, appointment_id, doctor_ids):
        with pytest.raises(ForbiddenException):
            await service.update_appointment(
                Caller.doctor(doctor_ids[1]),
                appointment_id,
                AppointmentUpdate(status="confirmed"),
            )


async def _never_busy(self, *args, **kwargs) -> bool:
    return False


class TestSlotUniqueness:
    """The unique doctor/start index holds even when the overlap query misses."""

    @pytest.mark.asyncio
    async def test_create_onto_taken_slot_conflicts(
        self,
        service,
        db_session,
        monkeypatch,
        appointment_id,
        other_patient_id,
        doctor_ids,
        exam_id,
    ):
        monkeypatch.setattr(AvailabilityService, "is_doctor_busy", _never_busy)
        data = AppointmentCreate(
            exam_id=exam_id, appointment_date=SLOT, doctor_id=doctor_ids[0]
        )

        with pytest.raises(ConflictException):
            await service.create_appointment(Caller.patient(other_patient_id), data)

        count = await db_session.scalar(select(func.count()).select_from(appointments))
        assert count == 1

    @pytest.mark.asyncio
    async def test_reschedule_onto_taken_slot_conflicts(
        self,
        service,
        db_session,
        monkeypatch,
        admin_id,
        appointment_id,
        other_patient_id,
        doctor_ids,
        exam_id,
    ):
        later = SLOT + timedelta(hours=3)
        moved = await create_appointment(
            db_session, other_patient_id, doctor_ids[0], exam_id, later
        )
        monkeypatch.setattr(AvailabilityService, "is_doctor_busy", _never_busy)

        with pytest.raises(ConflictException):
            await service.update_appointment(
                Caller.admin(admin_id), moved, AppointmentUpdate(appointment_date=SLOT)
            )

        stored = await db_session.scalar(
            select(appointments.c.scheduled_at).where(appointments.c.id == moved)
        )
        assert stored.replace(tzinfo=None) == later.replace(tzinfo=None)


@pytest.mark.asyncio
async def test_booking_loads_exam_once(
    service, monkeypatch, patient_id, exam_id
):
    calls = []
    original = DirectoryService.get_exam

    async def counting_get_exam(self, exam_id):
        calls.append(exam_id)
        return await original(self, exam_id)

    monkeypatch.setattr(DirectoryService, "get_exam", counting_get_exam)

    await service.create_appointment(
        Caller.patient(patient_id), AppointmentCreate(exam_id=exam_id, appointment_date=SLOT)
    )

    assert calls == [exam_id]
