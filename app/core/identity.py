"""Caller identity passed into every scheduling operation."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Roles a caller can act as."""

    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"


@dataclass(frozen=True)
class Caller:
    """An identity claim resolved by the HTTP boundary.

    The claim is trusted as supplied; whether the id refers to an existing
    record of that role is checked by the services.
    """

    role: Role
    id: UUID

    @classmethod
    def admin(cls, admin_id: UUID) -> "Caller":
        return cls(Role.ADMIN, admin_id)

    @classmethod
    def doctor(cls, doctor_id: UUID) -> "Caller":
        return cls(Role.DOCTOR, doctor_id)

    @classmethod
    def patient(cls, patient_id: UUID) -> "Caller":
        return cls(Role.PATIENT, patient_id)
