"""PostgreSQL implementation of EnrollmentRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from enrollment_service.core.errors import EnrollmentExistsError, VersionConflictError
from enrollment_service.db.tables import EnrollmentRow
from enrollment_service.models.enrollment import (
    CompletedUnit,
    Enrollment,
    UnitActivity,
)


class PgEnrollmentRepo:
    """Satisfies the EnrollmentRepo Protocol using PostgreSQL via SQLAlchemy.

    Every write is a single statement in its own transaction: the
    version-checked UPDATE either applies the whole new state or nothing.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        async with self._session_factory() as session:
            row = await session.get(EnrollmentRow, enrollment_id)
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def get_for_learner(
        self, learner_id: str, course_id: UUID
    ) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.learner_id == learner_id,
            EnrollmentRow.course_id == course_id,
        )
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_enrollment(row)

    async def add(self, enrollment: Enrollment) -> None:
        row = EnrollmentRow(id=enrollment.id, **_state_values(enrollment))
        row.version = enrollment.version
        try:
            async with self._session_factory() as session, session.begin():
                session.add(row)
        except IntegrityError:
            raise EnrollmentExistsError(
                f"{enrollment.learner_id}:{enrollment.course_id}"
            ) from None

    async def replace(self, enrollment: Enrollment, expected_version: int) -> Enrollment:
        values = _state_values(enrollment)
        # GREATEST skips NULLs, so a concurrent touch is never rolled back
        values["last_accessed_at"] = func.greatest(
            EnrollmentRow.last_accessed_at, enrollment.last_accessed_at
        )
        stmt = (
            update(EnrollmentRow)
            .where(
                EnrollmentRow.id == enrollment.id,
                EnrollmentRow.version == expected_version,
            )
            .values(**values, version=expected_version + 1)
            .returning(EnrollmentRow)
        )
        async with self._session_factory() as session, session.begin():
            row = (await session.execute(stmt)).scalar_one_or_none()
            if row is None:
                exists = await session.get(EnrollmentRow, enrollment.id)
                if exists is None:
                    raise KeyError("enrollment not found")
                raise VersionConflictError(
                    f"enrollment {enrollment.id} at version {exists.version}, "
                    f"expected {expected_version}"
                )
            return _row_to_enrollment(row)

    async def touch(self, enrollment_id: UUID, at: int) -> None:
        stmt = (
            update(EnrollmentRow)
            .where(
                EnrollmentRow.id == enrollment_id,
                or_(
                    EnrollmentRow.last_accessed_at.is_(None),
                    EnrollmentRow.last_accessed_at < at,
                ),
            )
            .values(last_accessed_at=at)
        )
        async with self._session_factory() as session, session.begin():
            await session.execute(stmt)

    async def list_by_learner(self, learner_id: str) -> list[Enrollment]:
        stmt = select(EnrollmentRow).where(EnrollmentRow.learner_id == learner_id)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]


def _state_values(enrollment: Enrollment) -> dict:
    return {
        "learner_id": enrollment.learner_id,
        "course_id": enrollment.course_id,
        "enrolled_at": enrollment.enrolled_at,
        "access_expires_at": enrollment.access_expires_at,
        "is_active": enrollment.is_active,
        "revoked_reason": enrollment.revoked_reason,
        "completed_units": [
            {"content_id": str(c.content_id), "completed_at": c.completed_at}
            for c in enrollment.completed_units
        ],
        "recent_activity": [
            {
                "content_id": str(a.content_id),
                "progress": a.progress,
                "duration_watched": a.duration_watched,
            }
            for a in enrollment.recent_activity
        ],
        "progress_percentage": enrollment.progress_percentage,
        "total_time_spent": enrollment.total_time_spent,
        "is_completed": enrollment.is_completed,
        "completed_at": enrollment.completed_at,
        "last_accessed_at": enrollment.last_accessed_at,
    }


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        learner_id=row.learner_id,
        course_id=row.course_id,
        enrolled_at=row.enrolled_at,
        access_expires_at=row.access_expires_at,
        is_active=row.is_active,
        revoked_reason=row.revoked_reason,
        completed_units=tuple(
            CompletedUnit(UUID(c["content_id"]), int(c["completed_at"]))
            for c in row.completed_units or ()
        ),
        recent_activity=tuple(
            UnitActivity(
                UUID(a["content_id"]),
                float(a["progress"]),
                int(a["duration_watched"]),
            )
            for a in row.recent_activity or ()
        ),
        progress_percentage=row.progress_percentage,
        total_time_spent=row.total_time_spent,
        is_completed=row.is_completed,
        completed_at=row.completed_at,
        last_accessed_at=row.last_accessed_at,
        version=row.version,
    )
