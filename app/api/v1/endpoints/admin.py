"""Admin-only endpoints for doctor qualification management."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.core.exceptions import ForbiddenException
from app.core.identity import Caller, Role
from app.dependencies import DatabaseSession, get_caller
from app.schemas.qualifications import QualificationResponse
from app.services.directory_service import DirectoryService

router = APIRouter(prefix="/admin", tags=["Admin"])


async def require_admin(db: DatabaseSession, caller: Caller = Depends(get_caller)) -> Caller:
    """
    Dependency to ensure the caller is an existing admin.

    Args:
        db: Database session
        caller: Identity resolved from the request headers

    Returns:
        Caller if admin

    Raises:
        ForbiddenException: If the caller is not an existing admin
    """
    if caller.role != Role.ADMIN:
        raise ForbiddenException("Admin access required")
    if not await DirectoryService(db).admin_exists(caller.id):
        raise ForbiddenException("Access not authorized")
    return caller


@router.post(
    "/doctors/{doctor_id}/exams/{exam_id}",
    response_model=QualificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Qualify a doctor for an exam",
)
async def add_qualification(
    doctor_id: UUID,
    exam_id: UUID,
    db: DatabaseSession,
    _admin: Caller = Depends(require_admin),
) -> QualificationResponse:
    """
    Mark a doctor as qualified to perform an exam.

    New qualifications go to the end of the exam's assignment roster.
    """
    qualification = await DirectoryService(db).add_qualification(doctor_id, exam_id)
    return QualificationResponse.model_validate(qualification)


@router.delete(
    "/doctors/{doctor_id}/exams/{exam_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Remove a doctor's exam qualification",
)
async def remove_qualification(
    doctor_id: UUID,
    exam_id: UUID,
    db: DatabaseSession,
    _admin: Caller = Depends(require_admin),
) -> Response:
    """Remove a qualification; already booked appointments keep their doctor."""
    await DirectoryService(db).remove_qualification(doctor_id, exam_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
