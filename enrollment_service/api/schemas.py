"""Response/request models shared by the enrollment routers."""

from __future__ import annotations

from pydantic import BaseModel

from enrollment_service.models.enrollment import Enrollment


class CompletedUnitOut(BaseModel):
    content_id: str
    completed_at: int


class UnitActivityOut(BaseModel):
    content_id: str
    progress: float
    duration_watched: int


class EnrollmentOut(BaseModel):
    id: str
    learner_id: str
    course_id: str
    enrolled_at: int
    access_expires_at: int | None
    is_active: bool
    is_expired: bool
    revoked_reason: str | None
    completed_units: list[CompletedUnitOut]
    recent_activity: list[UnitActivityOut]
    progress_percentage: int
    total_time_spent: int
    is_completed: bool
    completed_at: int | None
    last_accessed_at: int | None

    @staticmethod
    def from_enrollment(enrollment: Enrollment, now: int) -> EnrollmentOut:
        return EnrollmentOut(
            id=str(enrollment.id),
            learner_id=enrollment.learner_id,
            course_id=str(enrollment.course_id),
            enrolled_at=enrollment.enrolled_at,
            access_expires_at=enrollment.access_expires_at,
            is_active=enrollment.is_active,
            is_expired=enrollment.is_expired(now),
            revoked_reason=enrollment.revoked_reason,
            completed_units=[
                CompletedUnitOut(
                    content_id=str(c.content_id), completed_at=c.completed_at
                )
                for c in enrollment.completed_units
            ],
            recent_activity=[
                UnitActivityOut(
                    content_id=str(a.content_id),
                    progress=a.progress,
                    duration_watched=a.duration_watched,
                )
                for a in enrollment.recent_activity
            ],
            progress_percentage=enrollment.progress_percentage,
            total_time_spent=enrollment.total_time_spent,
            is_completed=enrollment.is_completed,
            completed_at=enrollment.completed_at,
            last_accessed_at=enrollment.last_accessed_at,
        )
