"""SQLAlchemy table definitions.

These map to the frozen dataclass models in enrollment_service/models/.
Repos convert between rows and dataclasses; the rest of the code never
sees a row object.

``courses`` and ``content_units`` are owned by the catalog; this service
only reads them through the content ledger.  ``enrollments`` is owned here.
"""

from __future__ import annotations

import uuid

from sqlalchemy import (
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from enrollment_service.db.engine import Base

# --- Catalog (read-only from this service) ---


class CourseRow(Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="upcoming"
    )  # upcoming|ongoing|completed|cancelled
    schedule_end: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class ContentUnitRow(Base):
    __tablename__ = "content_units"
    __table_args__ = (Index("ix_content_units_course_status", "course_id", "status"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("courses.id"), nullable=False
    )
    kind: Mapped[str] = mapped_column(
        String(32), nullable=False
    )  # recorded_class|live_class|test|study_material
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="draft"
    )  # draft|published|archived|scheduled
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)


# --- Enrollment state (owned by this service) ---


class EnrollmentRow(Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("learner_id", "course_id", name="uq_enrollment_learner_course"),
        Index("ix_enrollments_learner_active", "learner_id", "is_active"),
        Index("ix_enrollments_course_completed", "course_id", "is_completed"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    learner_id: Mapped[str] = mapped_column(String(320), nullable=False)
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("courses.id"), nullable=False
    )
    enrolled_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    access_expires_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    revoked_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # [{"content_id": "...", "completed_at": 1700000000}, ...]
    completed_units: Mapped[list[dict]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    # [{"content_id": "...", "progress": 42.0, "duration_watched": 300}, ...]
    recent_activity: Mapped[list[dict]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    progress_percentage: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    total_time_spent: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    last_accessed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
