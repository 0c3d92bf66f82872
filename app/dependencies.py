"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock, system_clock
from app.core.exceptions import BadRequestException
from app.core.identity import Caller, Role
from app.database import get_db

HEADER_ADMIN = "X-Demo-Admin-Id"
HEADER_DOCTOR = "X-Demo-Doctor-Id"
HEADER_PATIENT = "X-Demo-Patient-Id"

_ROLE_HEADERS = (
    (Role.ADMIN, HEADER_ADMIN),
    (Role.DOCTOR, HEADER_DOCTOR),
    (Role.PATIENT, HEADER_PATIENT),
)


def get_clock() -> Clock:
    """Clock used by time-dependent rules; overridden in tests."""
    return system_clock


def resolve_caller(
    admin_id: str | None,
    doctor_id: str | None,
    patient_id: str | None,
) -> Caller:
    """
    Build the caller from the identity headers.

    Exactly one header must carry a value.

    Raises:
        BadRequestException: No header, several headers, or a value that is not a UUID
    """
    supplied = [
        (role, header, value.strip())
        for (role, header), value in zip(_ROLE_HEADERS, (admin_id, doctor_id, patient_id))
        if value is not None and value.strip()
    ]

    header_names = ", ".join(header for _, header in _ROLE_HEADERS)
    if not supplied:
        raise BadRequestException(f"Exactly one header required among {header_names}")
    if len(supplied) > 1:
        raise BadRequestException(f"Only one header allowed among {header_names}")

    role, header, value = supplied[0]
    try:
        return Caller(role, UUID(value))
    except ValueError:
        raise BadRequestException(f"Invalid header: {header}")


async def get_caller(
    admin_header: Annotated[str | None, Header(alias=HEADER_ADMIN)] = None,
    doctor_header: Annotated[str | None, Header(alias=HEADER_DOCTOR)] = None,
    patient_header: Annotated[str | None, Header(alias=HEADER_PATIENT)] = None,
) -> Caller:
    """
    Resolve the trusted identity claim of the request.

    No authentication takes place; the services check that the identity exists.
    Parameter names stay clear of path parameters such as ``doctor_id``.
    """
    return resolve_caller(admin_header, doctor_header, patient_header)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentCaller = Annotated[Caller, Depends(get_caller)]
CurrentClock = Annotated[Clock, Depends(get_clock)]
