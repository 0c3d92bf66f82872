"""Doctor-Exam junction table: which doctors are qualified for which exams."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    UniqueConstraint,
    Uuid,
    func,
)

metadata = MetaData()

doctor_exams = Table(
    "doctor_exams",
    metadata,
    # Serial id doubles as the roster order used for doctor assignment
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "doctor_id",
        Uuid(as_uuid=True),
        ForeignKey("doctors.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "exam_id",
        Uuid(as_uuid=True),
        ForeignKey("exams.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("doctor_id", "exam_id", name="uq_doctor_exams_doctor_exam"),
)

Index("idx_doctor_exams_exam_id", doctor_exams.c.exam_id, doctor_exams.c.id)
