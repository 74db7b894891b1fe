"""PostgreSQL implementation of ContentLedger."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from enrollment_service.db.tables import ContentUnitRow, CourseRow
from enrollment_service.models.course import ContentStatus, Course, LedgerUnit


class PgContentLedger:
    """Satisfies the ContentLedger Protocol with read-only queries.

    Each call opens its own short session; nothing is held between calls.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_course(self, course_id: UUID) -> Course | None:
        async with self._session_factory() as session:
            row = await session.get(CourseRow, course_id)
        if row is None:
            return None
        return Course(
            id=row.id,
            slug=row.slug,
            title=row.title,
            status=row.status,
            schedule_end=row.schedule_end,
        )

    async def get_published_content(self, course_id: UUID) -> list[LedgerUnit]:
        stmt = (
            select(ContentUnitRow)
            .where(
                ContentUnitRow.course_id == course_id,
                ContentUnitRow.status == "published",
            )
            .order_by(
                ContentUnitRow.position,
                ContentUnitRow.created_at,
                ContentUnitRow.id,
            )
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        units = [
            LedgerUnit(
                id=row.id,
                duration_seconds=row.duration_seconds,
                order=row.position,
                created_at=row.created_at,
            )
            for row in rows
        ]
        # Postgres orders UUIDs by bytes; re-sort so the final tiebreak
        # matches LedgerUnit.sort_key exactly.
        return sorted(units, key=lambda u: u.sort_key)

    async def get_course_schedule_end(self, course_id: UUID) -> int | None:
        stmt = select(CourseRow.schedule_end).where(CourseRow.id == course_id)
        async with self._session_factory() as session:
            return (await session.execute(stmt)).scalar_one_or_none()

    async def content_status(
        self, content_id: UUID, course_id: UUID
    ) -> ContentStatus | None:
        stmt = select(ContentUnitRow.status).where(
            ContentUnitRow.id == content_id,
            ContentUnitRow.course_id == course_id,
        )
        async with self._session_factory() as session:
            status = (await session.execute(stmt)).scalar_one_or_none()
        if status is None:
            return None
        return ContentStatus(published=status == "published")
