"""Manual enrollment control."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from src.leadflow.api.dependencies import EngineKey, EnrollmentServiceDep
from src.leadflow.models.base import utc_now
from src.leadflow.schemas.engine import EnrollmentCancel, EnrollmentRead

router = APIRouter(prefix="/enrollments", tags=["enrollments"], dependencies=[EngineKey])


@router.post(
    "/{enrollment_id}/cancel",
    response_model=EnrollmentRead,
    summary="Stop an enrollment",
    description="Cancel an active enrollment. Finished enrollments are returned unchanged.",
    responses={404: {"description": "Enrollment not found"}},
)
async def cancel_enrollment(
    enrollment_id: UUID,
    service: EnrollmentServiceDep,
    request: EnrollmentCancel | None = None,
) -> EnrollmentRead:
    reason = request.reason if request else EnrollmentCancel().reason
    try:
        enrollment = await service.cancel_by_id(enrollment_id, reason, utc_now())
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return EnrollmentRead.model_validate(enrollment)
