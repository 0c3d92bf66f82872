"""Projection of stored appointments into response schemas.

Patient, doctor and exam fields are read at query time, so ``exam_name`` is
the exam's current name rather than a copy taken at booking.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import Select, select

from app.models.appointments import appointments
from app.models.doctors import doctors
from app.models.exams import exams
from app.models.patients import patients
from app.schemas.appointments import (
    AppointmentCreateResponse,
    AppointmentResponse,
    AppointmentUpdateResponse,
)


def appointment_view_query() -> Select:
    """Select an appointment joined with its patient, doctor and exam."""
    return (
        select(
            appointments.c.id,
            appointments.c.scheduled_at.label("appointment_date"),
            appointments.c.duration_minutes,
            appointments.c.status,
            appointments.c.reason,
            appointments.c.contraindications,
            appointments.c.patient_id,
            patients.c.first_name.label("patient_first_name"),
            patients.c.last_name.label("patient_last_name"),
            patients.c.email.label("patient_email"),
            appointments.c.doctor_id,
            doctors.c.first_name.label("doctor_first_name"),
            doctors.c.last_name.label("doctor_last_name"),
            doctors.c.gender.label("doctor_gender"),
            appointments.c.exam_id,
            exams.c.name.label("exam_name"),
        )
        .join(patients, appointments.c.patient_id == patients.c.id)
        .join(doctors, appointments.c.doctor_id == doctors.c.id)
        .join(exams, appointments.c.exam_id == exams.c.id)
    )


def appointment_by_id_query(appointment_id: UUID) -> Select:
    return appointment_view_query().where(appointments.c.id == appointment_id)


def to_create_response(row: Any) -> AppointmentCreateResponse:
    return AppointmentCreateResponse.model_validate(dict(row))


def to_response(row: Any) -> AppointmentResponse:
    return AppointmentResponse.model_validate(dict(row))


def to_update_response(row: Any) -> AppointmentUpdateResponse:
    return AppointmentUpdateResponse.model_validate(dict(row))
