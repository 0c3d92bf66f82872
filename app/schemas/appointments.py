"""Appointment schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.services.time_policy import to_utc


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})


class CamelModel(BaseModel):
    """Base schema exchanging camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AppointmentCreate(CamelModel):
    """Schema for booking a new appointment."""

    exam_id: UUID
    appointment_date: datetime = Field(..., description="Desired start, normalized to UTC")
    doctor_id: UUID | None = Field(
        None, description="Specific doctor; when omitted the first available is assigned"
    )
    reason: str | None = Field(None, max_length=1000)
    contraindications: str | None = Field(None, max_length=1000)


class AppointmentUpdate(CamelModel):
    """Schema for updating an existing appointment; null fields are ignored."""

    appointment_date: datetime | None = None
    status: str | None = Field(None, max_length=50)
    reason: str | None = Field(None, max_length=1000)
    contraindications: str | None = Field(None, max_length=1000)

    def provided_fields(self) -> dict:
        """Fields carried by the request, keyed by appointment column name."""
        values = {
            "scheduled_at": self.appointment_date,
            "status": self.status,
            "reason": self.reason,
            "contraindications": self.contraindications,
        }
        return {field: value for field, value in values.items() if value is not None}


class _AppointmentView(CamelModel):
    """Fields shared by every appointment projection."""

    id: UUID
    appointment_date: datetime
    patient_id: UUID
    status: AppointmentStatus
    reason: str | None = None
    contraindications: str | None = None
    exam_name: str

    @field_validator("appointment_date")
    @classmethod
    def normalize_appointment_date(cls, v: datetime) -> datetime:
        """Stored timestamps are UTC; some backends return them naive."""
        return to_utc(v)


class AppointmentCreateResponse(_AppointmentView):
    """Schema returned after booking."""

    doctor_id: UUID
    patient_email: str | None = None


class AppointmentResponse(_AppointmentView):
    """Schema for appointment list items and detail."""

    doctor_id: UUID
    doctor_first_name: str
    doctor_last_name: str
    doctor_gender: str | None = None
    patient_first_name: str
    patient_last_name: str
    patient_email: str | None = None
    duration_minutes: int | None = None


class AppointmentUpdateResponse(_AppointmentView):
    """Schema returned after an update."""

    patient_email: str | None = None


class CancelOutcome(str, Enum):
    """What a cancellation request did to the appointment."""

    CANCELLED = "cancelled"
    DELETED = "deleted"
