from __future__ import annotations

from dataclasses import dataclass
from typing import Literal
from uuid import UUID, uuid4

# Closed set of content variants.  The enrollment core never branches on
# the kind; it only needs id, duration, order and publication status.
ContentKind = Literal["recorded_class", "live_class", "test", "study_material"]
ContentStatusName = Literal["draft", "published", "archived", "scheduled"]


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    slug: str
    title: str
    status: str = "upcoming"  # upcoming|ongoing|completed|cancelled
    schedule_end: int | None = None  # epoch seconds

    @staticmethod
    def new(
        *,
        slug: str,
        title: str,
        status: str = "upcoming",
        schedule_end: int | None = None,
    ) -> Course:
        return Course(
            id=uuid4(),
            slug=slug,
            title=title,
            status=status,
            schedule_end=schedule_end,
        )


@dataclass(frozen=True, slots=True)
class ContentUnit:
    id: UUID
    course_id: UUID
    kind: ContentKind
    title: str
    position: int
    created_at: int
    status: ContentStatusName = "draft"
    duration_seconds: int | None = None

    @property
    def is_published(self) -> bool:
        return self.status == "published"

    @staticmethod
    def new(
        *,
        course_id: UUID,
        kind: ContentKind,
        title: str,
        position: int,
        created_at: int,
        status: ContentStatusName = "published",
        duration_seconds: int | None = None,
    ) -> ContentUnit:
        return ContentUnit(
            id=uuid4(),
            course_id=course_id,
            kind=kind,
            title=title,
            position=position,
            created_at=created_at,
            status=status,
            duration_seconds=duration_seconds,
        )

    def to_ledger_unit(self) -> LedgerUnit:
        return LedgerUnit(
            id=self.id,
            duration_seconds=self.duration_seconds,
            order=self.position,
            created_at=self.created_at,
        )


@dataclass(frozen=True, slots=True)
class LedgerUnit:
    """What the enrollment core sees of a published content unit."""

    id: UUID
    duration_seconds: int | None
    order: int
    created_at: int

    @property
    def sort_key(self) -> tuple[int, int, str]:
        # id is the last resort so equal (order, created_at) stays stable
        return (self.order, self.created_at, str(self.id))


@dataclass(frozen=True, slots=True)
class ContentStatus:
    published: bool
