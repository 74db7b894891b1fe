"""create courses, content_units and enrollments

Revision ID: 3c1e9a7d52b4
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1e9a7d52b4"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "courses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column(
            "status", sa.String(length=32), nullable=False, server_default="upcoming"
        ),
        sa.Column("schedule_end", sa.BigInteger(), nullable=True),
    )

    op.create_table(
        "content_units",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.id"),
            nullable=False,
        ),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column(
            "status", sa.String(length=32), nullable=False, server_default="draft"
        ),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
    )
    op.create_index(
        "ix_content_units_course_status", "content_units", ["course_id", "status"]
    )

    op.create_table(
        "enrollments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("learner_id", sa.String(length=320), nullable=False),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.id"),
            nullable=False,
        ),
        sa.Column("enrolled_at", sa.BigInteger(), nullable=False),
        sa.Column("access_expires_at", sa.BigInteger(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("revoked_reason", sa.Text(), nullable=True),
        sa.Column(
            "completed_units",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "recent_activity",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "progress_percentage", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "total_time_spent", sa.BigInteger(), nullable=False, server_default="0"
        ),
        sa.Column(
            "is_completed", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("completed_at", sa.BigInteger(), nullable=True),
        sa.Column("last_accessed_at", sa.BigInteger(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint(
            "learner_id", "course_id", name="uq_enrollment_learner_course"
        ),
    )
    op.create_index(
        "ix_enrollments_learner_active", "enrollments", ["learner_id", "is_active"]
    )
    op.create_index(
        "ix_enrollments_course_completed", "enrollments", ["course_id", "is_completed"]
    )


def downgrade() -> None:
    op.drop_index("ix_enrollments_course_completed", table_name="enrollments")
    op.drop_index("ix_enrollments_learner_active", table_name="enrollments")
    op.drop_table("enrollments")
    op.drop_index("ix_content_units_course_status", table_name="content_units")
    op.drop_table("content_units")
    op.drop_table("courses")
