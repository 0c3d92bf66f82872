"""Lookups against the patient, doctor, admin and exam records."""

from uuid import UUID

import structlog
from sqlalchemy import and_, delete, exists, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.core.identity import Caller, Role
from app.models.admins import admins
from app.models.doctor_exams import doctor_exams
from app.models.doctors import doctors
from app.models.exams import exams
from app.models.patients import patients

logger = structlog.get_logger(__name__)

_ROLE_TABLES = {
    Role.ADMIN: admins,
    Role.DOCTOR: doctors,
    Role.PATIENT: patients,
}


class DirectoryService:
    """Existence checks, exam catalog and doctor qualifications."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _exists(self, table, record_id: UUID) -> bool:
        result = await self.db.execute(select(exists().where(table.c.id == record_id)))
        return bool(result.scalar())

    async def admin_exists(self, admin_id: UUID) -> bool:
        return await self._exists(admins, admin_id)

    async def doctor_exists(self, doctor_id: UUID) -> bool:
        return await self._exists(doctors, doctor_id)

    async def patient_exists(self, patient_id: UUID) -> bool:
        return await self._exists(patients, patient_id)

    async def caller_exists(self, caller: Caller) -> bool:
        """Check that the caller's id refers to a record of its role."""
        return await self._exists(_ROLE_TABLES[caller.role], caller.id)

    async def get_exam(self, exam_id: UUID) -> dict | None:
        """Get exam by ID (id, name, duration_minutes, is_active)."""
        stmt = select(
            exams.c.id,
            exams.c.name,
            exams.c.duration_minutes,
            exams.c.is_active,
        ).where(exams.c.id == exam_id)
        result = await self.db.execute(stmt)
        exam = result.mappings().first()
        return dict(exam) if exam else None

    async def list_qualified_doctor_ids(self, exam_id: UUID) -> list[UUID]:
        """Doctors qualified for an exam, in the order they were associated."""
        stmt = (
            select(doctor_exams.c.doctor_id)
            .where(doctor_exams.c.exam_id == exam_id)
            .order_by(doctor_exams.c.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def is_qualified(self, doctor_id: UUID, exam_id: UUID) -> bool:
        stmt = select(
            exists().where(
                and_(
                    doctor_exams.c.doctor_id == doctor_id,
                    doctor_exams.c.exam_id == exam_id,
                )
            )
        )
        result = await self.db.execute(stmt)
        return bool(result.scalar())

    async def lock_doctor(self, doctor_id: UUID) -> None:
        """Serialize writes touching this doctor's calendar until commit."""
        await self.db.execute(
            select(doctors.c.id).where(doctors.c.id == doctor_id).with_for_update()
        )

    async def lock_patient(self, patient_id: UUID) -> None:
        """Serialize writes touching this patient's calendar until commit."""
        await self.db.execute(
            select(patients.c.id).where(patients.c.id == patient_id).with_for_update()
        )

    async def add_qualification(self, doctor_id: UUID, exam_id: UUID) -> dict:
        """
        Mark a doctor as qualified for an exam.

        Raises:
            NotFoundException: If the doctor or exam does not exist
            ConflictException: If the association already exists
        """
        if not await self.doctor_exists(doctor_id):
            raise NotFoundException("Doctor not found")
        if await self.get_exam(exam_id) is None:
            raise NotFoundException("Exam not found")
        if await self.is_qualified(doctor_id, exam_id):
            raise ConflictException("Doctor is already qualified for this exam")

        stmt = (
            insert(doctor_exams)
            .values(doctor_id=doctor_id, exam_id=exam_id)
            .returning(doctor_exams.c.doctor_id, doctor_exams.c.exam_id)
        )
        try:
            result = await self.db.execute(stmt)
            row = result.mappings().one()
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("Doctor is already qualified for this exam")

        logger.info("qualification_added", doctor_id=str(doctor_id), exam_id=str(exam_id))
        return dict(row)

    async def remove_qualification(self, doctor_id: UUID, exam_id: UUID) -> None:
        """
        Remove a doctor's qualification for an exam.

        Existing appointments keep their assigned doctor.

        Raises:
            NotFoundException: If the association does not exist
        """
        stmt = delete(doctor_exams).where(
            and_(
                doctor_exams.c.doctor_id == doctor_id,
                doctor_exams.c.exam_id == exam_id,
            )
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            await self.db.rollback()
            raise NotFoundException("Qualification not found")
        await self.db.commit()

        logger.info("qualification_removed", doctor_id=str(doctor_id), exam_id=str(exam_id))
