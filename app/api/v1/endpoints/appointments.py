"""Appointment endpoints."""

from uuid import UUID

from fastapi import APIRouter, Response, status

from app.dependencies import CurrentCaller, CurrentClock, DatabaseSession
from app.schemas.appointments import (
    AppointmentCreate,
    AppointmentCreateResponse,
    AppointmentResponse,
    AppointmentUpdate,
    AppointmentUpdateResponse,
)
from app.services.appointment_service import AppointmentService

router = APIRouter()

_IDENTITY_NOTE = (
    "Requires exactly one of X-Demo-Admin-Id, X-Demo-Doctor-Id or X-Demo-Patient-Id."
)


@router.get(
    "",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="List appointments",
    description=f"{_IDENTITY_NOTE} Admins see every appointment; doctors and patients their own.",
)
async def list_appointments(
    caller: CurrentCaller,
    db: DatabaseSession,
    clock: CurrentClock,
) -> list[AppointmentResponse]:
    """
    List appointments visible to the caller, earliest first.

    Args:
        caller: Identity resolved from the request headers
        db: Database session
        clock: Current time source

    Returns:
        Appointments ordered by date
    """
    service = AppointmentService(db, clock)
    return await service.list_appointments(caller)


@router.post(
    "",
    response_model=AppointmentCreateResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Appointments"],
    summary="Book an appointment",
    description="Requires X-Demo-Patient-Id. Admins and doctors cannot book.",
)
async def create_appointment(
    data: AppointmentCreate,
    caller: CurrentCaller,
    db: DatabaseSession,
    clock: CurrentClock,
) -> AppointmentCreateResponse:
    """
    Book an exam for the calling patient.

    Args:
        data: Exam, desired date, optional doctor and notes
        caller: Identity resolved from the request headers
        db: Database session
        clock: Current time source

    Returns:
        Created appointment
    """
    service = AppointmentService(db, clock)
    return await service.create_appointment(caller, data)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Get appointment by ID",
    description=f"{_IDENTITY_NOTE} Doctors and patients can only view their own appointments.",
)
async def get_appointment(
    appointment_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
    clock: CurrentClock,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Args:
        appointment_id: Appointment ID
        caller: Identity resolved from the request headers
        db: Database session
        clock: Current time source

    Returns:
        Appointment details
    """
    service = AppointmentService(db, clock)
    return await service.get_appointment(caller, appointment_id)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentUpdateResponse,
    status_code=status.HTTP_200_OK,
    tags=["Appointments"],
    summary="Update appointment",
    description=(
        f"{_IDENTITY_NOTE} Admins may change any field. Doctors may only change the status. "
        "Patients may change the date (up to 2 days before), reason and contraindications."
    ),
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    caller: CurrentCaller,
    db: DatabaseSession,
    clock: CurrentClock,
) -> AppointmentUpdateResponse:
    """
    Update an existing appointment.

    Args:
        appointment_id: Appointment ID
        data: Fields to change
        caller: Identity resolved from the request headers
        db: Database session
        clock: Current time source

    Returns:
        Updated appointment
    """
    service = AppointmentService(db, clock)
    return await service.update_appointment(caller, appointment_id, data)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["Appointments"],
    summary="Cancel appointment",
    description=(
        f"{_IDENTITY_NOTE} Sets the status to cancelled; completed appointments are "
        "deleted instead. Patients must cancel at least 2 days in advance."
    ),
)
async def cancel_appointment(
    appointment_id: UUID,
    caller: CurrentCaller,
    db: DatabaseSession,
    clock: CurrentClock,
) -> Response:
    """
    Cancel an appointment (soft delete), or delete it if completed.

    Args:
        appointment_id: Appointment ID
        caller: Identity resolved from the request headers
        db: Database session
        clock: Current time source
    """
    service = AppointmentService(db, clock)
    await service.cancel_appointment(caller, appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
