from __future__ import annotations

from dataclasses import dataclass, replace
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class CompletedUnit:
    content_id: UUID
    completed_at: int


@dataclass(frozen=True, slots=True)
class UnitActivity:
    """Resume state for one partially (or fully) consumed unit."""

    content_id: UUID
    progress: float = 0.0  # 0..100, highest value reported so far
    duration_watched: int = 0  # seconds, cumulative


@dataclass(frozen=True, slots=True)
class Enrollment:
    """One learner's enrollment in one course.

    Frozen: every mutation produces a new instance via ``dataclasses.replace``
    and is persisted with a version check, so a half-applied update can
    never be observed.

    ``progress_percentage`` is a cache of what the ProgressCalculator
    returns for ``completed_units`` against the course ledger.
    """

    id: UUID
    learner_id: str
    course_id: UUID
    enrolled_at: int
    access_expires_at: int | None = None
    is_active: bool = True
    revoked_reason: str | None = None
    completed_units: tuple[CompletedUnit, ...] = ()
    recent_activity: tuple[UnitActivity, ...] = ()
    progress_percentage: int = 0
    total_time_spent: int = 0
    is_completed: bool = False
    completed_at: int | None = None
    last_accessed_at: int | None = None
    version: int = 1

    @staticmethod
    def new(
        *,
        learner_id: str,
        course_id: UUID,
        enrolled_at: int,
        access_expires_at: int | None = None,
    ) -> Enrollment:
        return Enrollment(
            id=uuid4(),
            learner_id=learner_id,
            course_id=course_id,
            enrolled_at=enrolled_at,
            access_expires_at=access_expires_at,
            last_accessed_at=enrolled_at,
        )

    def completed_ids(self) -> frozenset[UUID]:
        return frozenset(c.content_id for c in self.completed_units)

    def activity_for(self, content_id: UUID) -> UnitActivity | None:
        for activity in self.recent_activity:
            if activity.content_id == content_id:
                return activity
        return None

    def is_expired(self, now: int) -> bool:
        return self.access_expires_at is not None and self.access_expires_at < now

    def with_activity(self, activity: UnitActivity) -> Enrollment:
        """Return a copy with ``activity`` replacing any entry for its unit."""
        others = tuple(
            a for a in self.recent_activity if a.content_id != activity.content_id
        )
        return replace(self, recent_activity=others + (activity,))

    def with_completed(self, content_id: UUID, at: int) -> Enrollment:
        """Return a copy with ``content_id`` completed; no-op if already there."""
        if content_id in self.completed_ids():
            return self
        return replace(
            self,
            completed_units=self.completed_units + (CompletedUnit(content_id, at),),
        )
