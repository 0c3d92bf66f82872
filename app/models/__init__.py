"""Database models."""

from sqlalchemy import MetaData

from app.models.admins import admins
from app.models.admins import metadata as admins_metadata
from app.models.appointments import appointments
from app.models.appointments import metadata as appointments_metadata
from app.models.doctor_exams import doctor_exams
from app.models.doctor_exams import metadata as doctor_exams_metadata
from app.models.doctors import doctors
from app.models.doctors import metadata as doctors_metadata
from app.models.exams import exams
from app.models.exams import metadata as exams_metadata
from app.models.patients import metadata as patients_metadata
from app.models.patients import patients

# Combined metadata, so foreign keys resolve across modules on create_all
metadata = MetaData()
for _module_metadata in (
    admins_metadata,
    patients_metadata,
    doctors_metadata,
    exams_metadata,
    doctor_exams_metadata,
    appointments_metadata,
):
    for _table in _module_metadata.tables.values():
        _table.to_metadata(metadata)

__all__ = [
    "admins",
    "appointments",
    "doctor_exams",
    "doctors",
    "exams",
    "metadata",
    "patients",
]
