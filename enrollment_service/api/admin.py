from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends

from enrollment_service.api.dependencies import require_role
from enrollment_service.api.errors import to_http_exception
from enrollment_service.api.schemas import EnrollmentOut
from enrollment_service.core.errors import EnrollmentError
from enrollment_service.models.principal import Principal
from enrollment_service.services.enrollment_service import enrollment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


@router.get("/enrollments/{enrollment_id}", response_model=EnrollmentOut)
async def admin_get_enrollment(
    enrollment_id: UUID,
    principal: Annotated[Principal, Depends(require_role("admin"))],
) -> EnrollmentOut:
    """Read any enrollment, including revoked or expired ones."""
    logger.info(
        "Admin enrollment read enrollment=%s by user=%s",
        enrollment_id,
        principal.user_id,
    )
    try:
        enrollment = await enrollment_service.get_enrollment_admin(enrollment_id)
    except EnrollmentError as e:
        raise to_http_exception(e) from None
    return EnrollmentOut.from_enrollment(enrollment, enrollment_service.now())
