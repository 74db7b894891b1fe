from __future__ import annotations

from typing import Protocol
from uuid import UUID

from enrollment_service.models.course import (
    ContentStatus,
    ContentUnit,
    Course,
    LedgerUnit,
)


class ContentLedger(Protocol):
    """Read-only view of the catalog that the enrollment core consumes.

    ``get_published_content`` returns units already ordered by
    ``LedgerUnit.sort_key``.  Implementations must not cache between calls.
    """

    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def get_published_content(self, course_id: UUID) -> list[LedgerUnit]: ...
    async def get_course_schedule_end(self, course_id: UUID) -> int | None: ...
    async def content_status(
        self, content_id: UUID, course_id: UUID
    ) -> ContentStatus | None: ...


class InMemoryContentLedger:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._units: dict[UUID, ContentUnit] = {}

    # --- seeding (catalog side; not part of the ledger Protocol) ---

    def add_course(self, course: Course) -> None:
        if course.id in self._courses:
            raise ValueError("course already exists")
        self._courses[course.id] = course

    def add_unit(self, unit: ContentUnit) -> None:
        if unit.course_id not in self._courses:
            raise KeyError("course not found")
        self._units[unit.id] = unit

    def put_unit(self, unit: ContentUnit) -> None:
        """Insert or replace a unit (e.g. to publish or archive it)."""
        self._units[unit.id] = unit

    def clear(self) -> None:
        self._courses.clear()
        self._units.clear()

    # --- ContentLedger ---

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def get_published_content(self, course_id: UUID) -> list[LedgerUnit]:
        units = [
            u.to_ledger_unit()
            for u in self._units.values()
            if u.course_id == course_id and u.is_published
        ]
        return sorted(units, key=lambda u: u.sort_key)

    async def get_course_schedule_end(self, course_id: UUID) -> int | None:
        course = self._courses.get(course_id)
        return course.schedule_end if course is not None else None

    async def content_status(
        self, content_id: UUID, course_id: UUID
    ) -> ContentStatus | None:
        unit = self._units.get(content_id)
        if unit is None or unit.course_id != course_id:
            return None
        return ContentStatus(published=unit.is_published)
