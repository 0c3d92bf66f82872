"""Doctor qualification schemas."""

from uuid import UUID

from app.schemas.appointments import CamelModel


class QualificationResponse(CamelModel):
    """A doctor-exam qualification."""

    doctor_id: UUID
    exam_id: UUID
