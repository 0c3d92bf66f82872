"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    func,
    text,
)

# Metadata for all tables
metadata = MetaData()

APPOINTMENT_STATUSES = ("pending", "confirmed", "cancelled", "completed")

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    # Ownership / references
    Column(
        "patient_id",
        Uuid(as_uuid=True),
        ForeignKey("patients.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "doctor_id",
        Uuid(as_uuid=True),
        ForeignKey("doctors.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column(
        "exam_id",
        Uuid(as_uuid=True),
        ForeignKey("exams.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    # Slot: [scheduled_at, ends_at)
    Column("scheduled_at", DateTime(timezone=True), nullable=False),
    Column("ends_at", DateTime(timezone=True), nullable=False),
    # Copied from the exam at booking time
    Column("duration_minutes", Integer, nullable=True),
    # Status management
    Column("status", String(20), nullable=False, server_default="pending"),
    # Details
    Column("reason", Text, nullable=True),
    Column("contraindications", Text, nullable=True),
    # Audit fields
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    # Constraints
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
        name="appointments_status_check",
    ),
    CheckConstraint("ends_at > scheduled_at", name="appointments_window_check"),
)

Index("idx_appointments_doctor_window", appointments.c.doctor_id, appointments.c.scheduled_at)
Index("idx_appointments_patient_window", appointments.c.patient_id, appointments.c.scheduled_at)
# Backstop against two concurrent bookings of the same doctor slot
Index(
    "uq_appointments_doctor_slot_active",
    appointments.c.doctor_id,
    appointments.c.scheduled_at,
    unique=True,
    postgresql_where=text("status <> 'cancelled'"),
    sqlite_where=text("status <> 'cancelled'"),
)
