"""Course enrollment endpoint.

  Client -> POST /v1/courses/{course_id}/enroll
  -> 201 Created  (new enrollment)
  -> 200 OK       (already enrolled and accessible: same record returned)
  -> 200 OK       (revoked/expired enrollment reactivated, progress kept)
  -> 404          (course does not exist)
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from enrollment_service.api.dependencies import require_user
from enrollment_service.api.errors import to_http_exception
from enrollment_service.api.schemas import EnrollmentOut
from enrollment_service.core.errors import EnrollmentError
from enrollment_service.models.principal import Principal
from enrollment_service.services.enrollment_service import enrollment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/courses", tags=["courses"])


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_in_course(
    course_id: UUID,
    response: Response,
    principal: Annotated[Principal, Depends(require_user)],
) -> EnrollmentOut:
    try:
        result = await enrollment_service.enroll(principal.user_id, course_id)
    except EnrollmentError as e:
        raise to_http_exception(e) from None

    if not result.created:
        response.status_code = status.HTTP_200_OK
    return EnrollmentOut.from_enrollment(result.enrollment, enrollment_service.now())
