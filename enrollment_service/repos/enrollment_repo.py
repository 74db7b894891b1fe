from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from enrollment_service.core.errors import EnrollmentExistsError, VersionConflictError
from enrollment_service.models.enrollment import Enrollment


class EnrollmentRepo(Protocol):
    """Storage for enrollments.

    ``replace`` is a compare-and-set on ``version``: it writes only if the
    stored version still equals ``expected_version`` and returns the stored
    record (version bumped).  Uniqueness of (learner_id, course_id) is
    enforced by ``add``.
    """

    async def get(self, enrollment_id: UUID) -> Enrollment | None: ...
    async def get_for_learner(
        self, learner_id: str, course_id: UUID
    ) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def replace(
        self, enrollment: Enrollment, expected_version: int
    ) -> Enrollment: ...
    async def touch(self, enrollment_id: UUID, at: int) -> None: ...
    async def list_by_learner(self, learner_id: str) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Enrollment] = {}
        self._by_pair: dict[tuple[str, UUID], UUID] = {}

    def clear(self) -> None:
        self._by_id.clear()
        self._by_pair.clear()

    async def get(self, enrollment_id: UUID) -> Enrollment | None:
        return self._by_id.get(enrollment_id)

    async def get_for_learner(
        self, learner_id: str, course_id: UUID
    ) -> Enrollment | None:
        enrollment_id = self._by_pair.get((learner_id, course_id))
        if enrollment_id is None:
            return None
        return self._by_id.get(enrollment_id)

    async def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.learner_id, enrollment.course_id)
        if key in self._by_pair:
            raise EnrollmentExistsError(f"{key[0]}:{key[1]}")
        self._by_id[enrollment.id] = enrollment
        self._by_pair[key] = enrollment.id

    async def replace(self, enrollment: Enrollment, expected_version: int) -> Enrollment:
        current = self._by_id.get(enrollment.id)
        if current is None:
            raise KeyError("enrollment not found")
        if current.version != expected_version:
            raise VersionConflictError(
                f"enrollment {enrollment.id} at version {current.version}, "
                f"expected {expected_version}"
            )

        # a touch that landed since the read must not be rolled back
        accessed = [
            t
            for t in (current.last_accessed_at, enrollment.last_accessed_at)
            if t is not None
        ]
        stored = replace(
            enrollment,
            version=expected_version + 1,
            last_accessed_at=max(accessed) if accessed else None,
        )
        self._by_id[enrollment.id] = stored
        return stored

    async def touch(self, enrollment_id: UUID, at: int) -> None:
        current = self._by_id.get(enrollment_id)
        if current is None:
            raise KeyError("enrollment not found")
        # last-access is last-writer-wins and does not bump the version
        if current.last_accessed_at is None or current.last_accessed_at < at:
            self._by_id[enrollment_id] = replace(current, last_accessed_at=at)

    async def list_by_learner(self, learner_id: str) -> list[Enrollment]:
        return [e for e in self._by_id.values() if e.learner_id == learner_id]
