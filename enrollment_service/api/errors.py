from __future__ import annotations

import logging

from fastapi import HTTPException, status

from enrollment_service.core.errors import (
    ConflictError,
    EnrollmentError,
    ForbiddenError,
    InvalidError,
    NotFoundError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[EnrollmentError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    ConflictError: status.HTTP_409_CONFLICT,
    InvalidError: status.HTTP_422_UNPROCESSABLE_CONTENT,
}


def to_http_exception(exc: EnrollmentError) -> HTTPException:
    """Map a service error to an HTTPException carrying kind + reason.

    Conflicts also get a Retry-After hint; every other kind is final.
    """
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    logger.warning("Request rejected kind=%s reason=%s", exc.kind, exc.reason)
    headers = {"Retry-After": "1"} if exc.retryable else None
    return HTTPException(
        status_code=status_code,
        detail={"kind": exc.kind, "reason": exc.reason},
        headers=headers,
    )
