"""Exam catalog model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
    func,
    true,
)

metadata = MetaData()

exams = Table(
    "exams",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid4),
    Column("name", String(150), nullable=False, unique=True),
    Column("description", Text),
    Column("duration_minutes", Integer, nullable=False),
    Column("is_active", Boolean, nullable=False, server_default=true()),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    CheckConstraint("duration_minutes > 0", name="exams_duration_positive"),
)
