"""Enrollment and progress tracking.

Composes the access guard, the content ledger, the progress calculator and
the next-content resolver over an EnrollmentRepo.

Write path (enroll reactivation, record_progress, revoke):

  1. load the enrollment without a lock, fail fast on access/existence
  2. take the ledger snapshot (remote call, outside the lock)
  3. hold the per-record lock, re-read, re-check access, compute
  4. version-checked write; on a version conflict re-read and recompute,
     at most MAX_WRITE_ATTEMPTS times, then ConflictError

Read path (get_enrollment, next_content, listing, stats) takes no lock.
Completed units only ever accumulate, so a read that races a write can
miss the newest completion but never reports one that did not happen.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from uuid import UUID

from enrollment_service.core.errors import (
    ConflictError,
    EnrollmentExistsError,
    InvalidError,
    NotFoundError,
    VersionConflictError,
)
from enrollment_service.core.metrics import (
    COURSE_COMPLETIONS,
    ENROLLMENTS,
    WRITE_CONFLICTS,
)
from enrollment_service.db.engine import async_session_factory
from enrollment_service.models.course import LedgerUnit
from enrollment_service.models.enrollment import Enrollment, UnitActivity
from enrollment_service.repos.content_ledger import ContentLedger, InMemoryContentLedger
from enrollment_service.repos.enrollment_repo import (
    EnrollmentRepo,
    InMemoryEnrollmentRepo,
)
from enrollment_service.repos.pg_content_ledger import PgContentLedger
from enrollment_service.repos.pg_enrollment_repo import PgEnrollmentRepo
from enrollment_service.services.access_guard import check, ensure_access
from enrollment_service.services.next_content import next_unit
from enrollment_service.services.progress_calculator import weighted_progress
from enrollment_service.services.record_lock import RecordLock, record_lock

logger = logging.getLogger(__name__)

# A unit reported at or above this percentage counts as completed.
COMPLETION_THRESHOLD = 95.0

# Access stays open this long after the course schedule ends.
ACCESS_GRACE_SECONDS = 30 * 24 * 60 * 60

MAX_WRITE_ATTEMPTS = 3
MAX_PAGE_SIZE = 50
DEFAULT_REVOKE_REASON = "Revoked by user"

_SORT_FIELDS = ("enrolled_at", "progress_percentage", "last_accessed_at")

Clock = Callable[[], int]


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def _log_extra(enrollment: Enrollment) -> dict[str, str]:
    return {
        "enrollment_id": str(enrollment.id),
        "course_id": str(enrollment.course_id),
        "learner_id": enrollment.learner_id,
    }


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EnrollResult:
    enrollment: Enrollment
    outcome: str  # created|existing|reactivated

    @property
    def created(self) -> bool:
        return self.outcome == "created"


@dataclass(frozen=True, slots=True)
class NextContent:
    progress_percentage: int
    next_unit_id: UUID | None
    completed_count: int
    total_count: int
    course_completed: bool


@dataclass(frozen=True, slots=True)
class EnrollmentFilters:
    is_active: bool | None = None
    is_completed: bool | None = None
    course_id: UUID | None = None
    min_progress: int | None = None
    max_progress: int | None = None
    include_expired: bool = False
    page: int = 1
    limit: int = 10
    sort: str = "-enrolled_at"


@dataclass(frozen=True, slots=True)
class EnrollmentPage:
    items: list[Enrollment]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit)

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pages


@dataclass(frozen=True, slots=True)
class LearningStats:
    total_enrolled: int = 0
    active_courses: int = 0
    completed_courses: int = 0
    completion_rate: float = 0.0
    avg_progress: float = 0.0
    total_time_spent: int = 0


# ---------------------------------------------------------------------------
# Pure state transitions
# ---------------------------------------------------------------------------


def validate_progress_input(progress: float, watched_delta: int) -> None:
    if not 0 <= progress <= 100:
        raise InvalidError(f"progress must be within 0..100 (got {progress})")
    if watched_delta < 0:
        raise InvalidError(
            f"watched duration must not be negative (got {watched_delta})"
        )


def apply_progress(
    enrollment: Enrollment,
    ledger: Sequence[LedgerUnit],
    content_id: UUID,
    progress: float,
    watched_delta: int,
    now: int,
) -> Enrollment:
    """Fold one progress report into ``enrollment``.

    Re-applying the same report only adds ``watched_delta`` to the time
    counters again; progress, completion and percentage are unchanged.
    """
    previous = enrollment.activity_for(content_id)
    if previous is None:
        activity = UnitActivity(content_id, progress, watched_delta)
    else:
        activity = UnitActivity(
            content_id,
            max(previous.progress, progress),
            previous.duration_watched + watched_delta,
        )

    updated = enrollment.with_activity(activity)
    if activity.progress >= COMPLETION_THRESHOLD:
        updated = updated.with_completed(content_id, now)

    # progress_percentage never decreases, even when new units get published
    percentage = max(
        enrollment.progress_percentage,
        weighted_progress(updated.completed_ids(), ledger),
    )
    updated = replace(
        updated,
        progress_percentage=percentage,
        total_time_spent=enrollment.total_time_spent + watched_delta,
        last_accessed_at=now,
    )

    if percentage >= 100 and not updated.is_completed:
        updated = replace(updated, is_completed=True, completed_at=now)
    return updated


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class EnrollmentService:
    def __init__(
        self,
        repo: EnrollmentRepo,
        ledger: ContentLedger,
        lock: RecordLock,
        *,
        clock: Clock = _now,
    ) -> None:
        self._repo = repo
        self._ledger = ledger
        self._lock = lock
        self._clock = clock

    def now(self) -> int:
        return self._clock()

    # --- helpers ---

    async def _load(self, enrollment_id: UUID) -> Enrollment:
        enrollment = await self._repo.get(enrollment_id)
        if enrollment is None:
            raise NotFoundError("enrollment not found")
        return enrollment

    async def _mutate(
        self,
        enrollment: Enrollment,
        change: Callable[[Enrollment], Enrollment],
    ) -> tuple[Enrollment, Enrollment]:
        """Run ``change`` as a locked, version-checked read-modify-write.

        Returns (state read, state stored).  ``change`` may raise to abort;
        nothing is written in that case.  Returning its argument unchanged
        skips the write.
        """
        key = f"{enrollment.learner_id}:{enrollment.course_id}"
        async with self._lock.hold(key):
            for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
                current = await self._load(enrollment.id)
                updated = change(current)
                if updated is current:
                    return current, current
                try:
                    stored = await self._repo.replace(
                        updated, expected_version=current.version
                    )
                except VersionConflictError:
                    logger.info(
                        "Version conflict on enrollment=%s attempt=%d/%d",
                        enrollment.id,
                        attempt,
                        MAX_WRITE_ATTEMPTS,
                        extra=_log_extra(enrollment),
                    )
                    if attempt < MAX_WRITE_ATTEMPTS:
                        WRITE_CONFLICTS.labels(outcome="retried").inc()
                    continue
                return current, stored

        WRITE_CONFLICTS.labels(outcome="exhausted").inc()
        logger.warning(
            "Giving up on enrollment=%s after %d conflicting writes",
            enrollment.id,
            MAX_WRITE_ATTEMPTS,
            extra=_log_extra(enrollment),
        )
        raise ConflictError("enrollment was modified concurrently, retry")

    # --- operations ---

    async def enroll(self, learner_id: str, course_id: UUID) -> EnrollResult:
        course = await self._ledger.get_course(course_id)
        if course is None:
            logger.warning("Enroll rejected: course=%s not found", course_id)
            raise NotFoundError("course not found")

        now = self._clock()
        existing = await self._repo.get_for_learner(learner_id, course_id)
        if existing is not None and check(existing, now).allowed:
            ENROLLMENTS.labels(outcome="existing").inc()
            return EnrollResult(existing, "existing")

        schedule_end = await self._ledger.get_course_schedule_end(course_id)
        expires_at = (
            schedule_end + ACCESS_GRACE_SECONDS if schedule_end is not None else None
        )

        if existing is None:
            enrollment = Enrollment.new(
                learner_id=learner_id,
                course_id=course_id,
                enrolled_at=now,
                access_expires_at=expires_at,
            )
            try:
                await self._repo.add(enrollment)
            except EnrollmentExistsError:
                # a concurrent enroll for the same pair won the insert
                winner = await self._repo.get_for_learner(learner_id, course_id)
                if winner is None:
                    raise ConflictError("concurrent enrollment, retry") from None
                ENROLLMENTS.labels(outcome="existing").inc()
                return EnrollResult(winner, "existing")

            ENROLLMENTS.labels(outcome="created").inc()
            logger.info(
                "Enrolled learner=%s course=%s expires_at=%s",
                learner_id,
                course_id,
                expires_at,
                extra=_log_extra(enrollment),
            )
            return EnrollResult(enrollment, "created")

        def reactivate(current: Enrollment) -> Enrollment:
            if check(current, now).allowed:
                return current
            return replace(
                current,
                is_active=True,
                revoked_reason=None,
                access_expires_at=expires_at,
                last_accessed_at=now,
            )

        before, stored = await self._mutate(existing, reactivate)
        if stored is before:
            ENROLLMENTS.labels(outcome="existing").inc()
            return EnrollResult(stored, "existing")

        ENROLLMENTS.labels(outcome="reactivated").inc()
        logger.info(
            "Reactivated enrollment=%s expires_at=%s",
            stored.id,
            expires_at,
            extra=_log_extra(stored),
        )
        return EnrollResult(stored, "reactivated")

    async def get_enrollment(self, enrollment_id: UUID, learner_id: str) -> Enrollment:
        enrollment = await self._load(enrollment_id)
        now = self._clock()
        ensure_access(enrollment, learner_id, now)
        await self._repo.touch(enrollment.id, now)
        return replace(enrollment, last_accessed_at=now)

    async def get_enrollment_admin(self, enrollment_id: UUID) -> Enrollment:
        """Read without the access gate (revoked/expired records included)."""
        return await self._load(enrollment_id)

    async def record_progress(
        self,
        enrollment_id: UUID,
        learner_id: str,
        content_id: UUID,
        progress: float,
        watched_delta: int,
    ) -> Enrollment:
        validate_progress_input(progress, watched_delta)

        enrollment = await self._load(enrollment_id)
        now = self._clock()
        ensure_access(enrollment, learner_id, now)

        status = await self._ledger.content_status(content_id, enrollment.course_id)
        if status is None or not status.published:
            logger.warning(
                "Progress rejected: content=%s not published in course=%s",
                content_id,
                enrollment.course_id,
                extra=_log_extra(enrollment),
            )
            raise NotFoundError("content not found")

        ledger = await self._ledger.get_published_content(enrollment.course_id)

        def change(current: Enrollment) -> Enrollment:
            # revocation may have landed since the unlocked read
            ensure_access(current, learner_id, now)
            return apply_progress(
                current, ledger, content_id, progress, watched_delta, now
            )

        before, stored = await self._mutate(enrollment, change)

        logger.debug(
            "Progress enrollment=%s content=%s progress=%.1f delta=%d -> %d%%",
            stored.id,
            content_id,
            progress,
            watched_delta,
            stored.progress_percentage,
            extra=_log_extra(stored),
        )
        if stored.is_completed and not before.is_completed:
            COURSE_COMPLETIONS.inc()
            logger.info(
                "Course completed enrollment=%s learner=%s",
                stored.id,
                stored.learner_id,
                extra=_log_extra(stored),
            )
        return stored

    async def next_content(self, enrollment_id: UUID, learner_id: str) -> NextContent:
        enrollment = await self._load(enrollment_id)
        now = self._clock()
        ensure_access(enrollment, learner_id, now)

        ledger = await self._ledger.get_published_content(enrollment.course_id)
        completed = enrollment.completed_ids()
        completed_count = sum(1 for unit in ledger if unit.id in completed)

        if enrollment.is_completed:
            next_id = None
        else:
            next_id = next_unit(ledger, completed)

        await self._repo.touch(enrollment.id, now)
        return NextContent(
            progress_percentage=enrollment.progress_percentage,
            next_unit_id=next_id,
            completed_count=completed_count,
            total_count=len(ledger),
            course_completed=enrollment.is_completed,
        )

    async def revoke(
        self,
        enrollment_id: UUID,
        actor_id: str,
        *,
        reason: str | None = None,
        as_admin: bool = False,
    ) -> Enrollment:
        enrollment = await self._repo.get(enrollment_id)
        if enrollment is None or (not as_admin and enrollment.learner_id != actor_id):
            raise NotFoundError("enrollment not found")

        now = self._clock()

        def change(current: Enrollment) -> Enrollment:
            if not current.is_active:
                return current
            return replace(
                current,
                is_active=False,
                revoked_reason=reason or DEFAULT_REVOKE_REASON,
                access_expires_at=now,
            )

        before, stored = await self._mutate(enrollment, change)
        if stored is not before:
            logger.info(
                "Revoked enrollment=%s by=%s reason=%r",
                stored.id,
                actor_id,
                stored.revoked_reason,
                extra=_log_extra(stored),
            )
        return stored

    async def list_enrollments(
        self, learner_id: str, filters: EnrollmentFilters
    ) -> EnrollmentPage:
        descending = filters.sort.startswith("-")
        sort_field = filters.sort.lstrip("-")
        if sort_field not in _SORT_FIELDS:
            raise InvalidError(
                f"sort must be one of {', '.join(_SORT_FIELDS)} (got {filters.sort!r})"
            )

        page = max(1, filters.page)
        limit = min(max(1, filters.limit), MAX_PAGE_SIZE)
        now = self._clock()

        def keep(e: Enrollment) -> bool:
            if filters.is_active is not None and e.is_active != filters.is_active:
                return False
            if (
                filters.is_completed is not None
                and e.is_completed != filters.is_completed
            ):
                return False
            if filters.course_id is not None and e.course_id != filters.course_id:
                return False
            progress = e.progress_percentage
            if filters.min_progress is not None and progress < filters.min_progress:
                return False
            if filters.max_progress is not None and progress > filters.max_progress:
                return False
            if not filters.include_expired and e.is_expired(now):
                return False
            return True

        matched = [e for e in await self._repo.list_by_learner(learner_id) if keep(e)]
        # None sorts as oldest/lowest
        matched.sort(
            key=lambda e: (getattr(e, sort_field) or 0, str(e.id)),
            reverse=descending,
        )

        start = (page - 1) * limit
        return EnrollmentPage(
            items=matched[start : start + limit],
            total=len(matched),
            page=page,
            limit=limit,
        )

    async def learning_stats(self, learner_id: str) -> LearningStats:
        active = [e for e in await self._repo.list_by_learner(learner_id) if e.is_active]
        if not active:
            return LearningStats()

        now = self._clock()
        completed = sum(1 for e in active if e.is_completed)
        return LearningStats(
            total_enrolled=len(active),
            active_courses=sum(1 for e in active if not e.is_expired(now)),
            completed_courses=completed,
            completion_rate=round(completed / len(active) * 100, 2),
            avg_progress=round(
                sum(e.progress_percentage for e in active) / len(active), 2
            ),
            total_time_spent=sum(e.total_time_spent for e in active),
        )


# ---------------------------------------------------------------------------
# Module-level singletons
# ---------------------------------------------------------------------------

if async_session_factory is not None:
    enrollment_repo: EnrollmentRepo = PgEnrollmentRepo(async_session_factory)
    content_ledger: ContentLedger = PgContentLedger(async_session_factory)
else:
    enrollment_repo = InMemoryEnrollmentRepo()
    content_ledger = InMemoryContentLedger()

enrollment_service = EnrollmentService(enrollment_repo, content_ledger, record_lock)
