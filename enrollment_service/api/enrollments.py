"""Enrollment progress endpoints.

Item completion sequence:
  Client -> POST /v1/enrollments/{id}/progress {content_id, progress, duration_watched}
  -> access check (owner, active, not expired)
  -> content check (in course, published)
  -> locked read-modify-write of the enrollment
  -> 200 with the updated enrollment

Resume sequence:
  Client -> GET /v1/enrollments/{id}/next
  -> {progress_percentage, next_unit_id | null, completed_count, total_count}

Every rejection carries {"kind": ..., "reason": ...} in ``detail``; only
409 (kind=conflict) is worth retrying.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from enrollment_service.api.dependencies import require_user
from enrollment_service.api.errors import to_http_exception
from enrollment_service.api.schemas import EnrollmentOut
from enrollment_service.core.errors import EnrollmentError
from enrollment_service.core.metrics import PROGRESS_UPDATES
from enrollment_service.models.principal import Principal
from enrollment_service.services.enrollment_service import (
    EnrollmentFilters,
    enrollment_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


class ProgressIn(BaseModel):
    content_id: UUID
    progress: float = 0.0
    duration_watched: int = 0


class NextContentOut(BaseModel):
    progress_percentage: int
    next_unit_id: str | None
    completed_count: int
    total_count: int
    course_completed: bool


class RevokeIn(BaseModel):
    reason: str | None = None


class PaginationOut(BaseModel):
    page: int
    pages: int
    limit: int
    has_prev: bool
    has_next: bool


class EnrollmentListOut(BaseModel):
    count: int
    data: list[EnrollmentOut]
    pagination: PaginationOut


class LearningStatsOut(BaseModel):
    total_enrolled: int
    active_courses: int
    completed_courses: int
    completion_rate: float
    avg_progress: float
    total_time_spent: int


# ---------------------------------------------------------------------------
# Collection endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=EnrollmentListOut)
async def list_my_enrollments(
    principal: Annotated[Principal, Depends(require_user)],
    is_active: bool | None = None,
    is_completed: bool | None = None,
    course_id: UUID | None = None,
    min_progress: int | None = None,
    max_progress: int | None = None,
    include_expired: bool = False,
    page: int = 1,
    limit: int = 10,
    sort: str = "-enrolled_at",
) -> EnrollmentListOut:
    filters = EnrollmentFilters(
        is_active=is_active,
        is_completed=is_completed,
        course_id=course_id,
        min_progress=min_progress,
        max_progress=max_progress,
        include_expired=include_expired,
        page=page,
        limit=limit,
        sort=sort,
    )
    try:
        result = await enrollment_service.list_enrollments(principal.user_id, filters)
    except EnrollmentError as e:
        raise to_http_exception(e) from None

    now = enrollment_service.now()
    return EnrollmentListOut(
        count=result.total,
        data=[EnrollmentOut.from_enrollment(e, now) for e in result.items],
        pagination=PaginationOut(
            page=result.page,
            pages=result.pages,
            limit=result.limit,
            has_prev=result.has_prev,
            has_next=result.has_next,
        ),
    )


@router.get("/stats", response_model=LearningStatsOut)
async def get_my_learning_stats(
    principal: Annotated[Principal, Depends(require_user)],
) -> LearningStatsOut:
    stats = await enrollment_service.learning_stats(principal.user_id)
    return LearningStatsOut(
        total_enrolled=stats.total_enrolled,
        active_courses=stats.active_courses,
        completed_courses=stats.completed_courses,
        completion_rate=stats.completion_rate,
        avg_progress=stats.avg_progress,
        total_time_spent=stats.total_time_spent,
    )


# ---------------------------------------------------------------------------
# Single enrollment
# ---------------------------------------------------------------------------


@router.get("/{enrollment_id}", response_model=EnrollmentOut)
async def get_enrollment(
    enrollment_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> EnrollmentOut:
    try:
        enrollment = await enrollment_service.get_enrollment(
            enrollment_id, principal.user_id
        )
    except EnrollmentError as e:
        raise to_http_exception(e) from None
    return EnrollmentOut.from_enrollment(enrollment, enrollment_service.now())


@router.post("/{enrollment_id}/progress", response_model=EnrollmentOut)
async def record_progress(
    enrollment_id: UUID,
    payload: ProgressIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> EnrollmentOut:
    try:
        enrollment = await enrollment_service.record_progress(
            enrollment_id,
            principal.user_id,
            payload.content_id,
            payload.progress,
            payload.duration_watched,
        )
    except EnrollmentError as e:
        PROGRESS_UPDATES.labels(result=e.kind).inc()
        raise to_http_exception(e) from None

    PROGRESS_UPDATES.labels(result="ok").inc()
    return EnrollmentOut.from_enrollment(enrollment, enrollment_service.now())


@router.get("/{enrollment_id}/next", response_model=NextContentOut)
async def get_next_content(
    enrollment_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> NextContentOut:
    try:
        result = await enrollment_service.next_content(enrollment_id, principal.user_id)
    except EnrollmentError as e:
        raise to_http_exception(e) from None

    return NextContentOut(
        progress_percentage=result.progress_percentage,
        next_unit_id=str(result.next_unit_id) if result.next_unit_id else None,
        completed_count=result.completed_count,
        total_count=result.total_count,
        course_completed=result.course_completed,
    )


@router.post("/{enrollment_id}/revoke", response_model=EnrollmentOut)
async def revoke_enrollment(
    enrollment_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    payload: RevokeIn | None = None,
) -> EnrollmentOut:
    try:
        enrollment = await enrollment_service.revoke(
            enrollment_id,
            principal.user_id,
            reason=payload.reason if payload else None,
            as_admin=principal.is_platform_admin(),
        )
    except EnrollmentError as e:
        raise to_http_exception(e) from None
    return EnrollmentOut.from_enrollment(enrollment, enrollment_service.now())
