from __future__ import annotations

import sys
import time
from pathlib import Path
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from enrollment_service.main import app
from enrollment_service.models.course import ContentUnit, Course
from enrollment_service.services import token_service
from enrollment_service.services.enrollment_service import (
    content_ledger,
    enrollment_repo,
)
from enrollment_service.services.record_lock import record_lock

# Ensure repo root is on sys.path so `import enrollment_service` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_enrollment_state() -> None:
    """Clear enrollments, the catalog and lock table between tests."""
    enrollment_repo.clear()  # type: ignore[union-attr]
    content_ledger.clear()  # type: ignore[union-attr]
    record_lock.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    """Token with default role (user)."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    """Token with admin role."""
    return mint_token(username="test-admin", roles=["admin"])


# ---------------------------------------------------------------------------
# Catalog test helpers
# ---------------------------------------------------------------------------


def create_test_course(
    slug: str = "test-course", schedule_end: int | None = None
) -> Course:
    """Create and persist a course in the in-memory ledger."""
    course = Course.new(
        slug=slug,
        title=slug.replace("-", " ").title(),
        status="ongoing",
        schedule_end=schedule_end,
    )
    content_ledger.add_course(course)  # type: ignore[union-attr]
    return course


def add_test_unit(
    course_id: UUID,
    position: int,
    duration_seconds: int | None = 60,
    status: str = "published",
    created_at: int | None = None,
) -> ContentUnit:
    """Add a content unit to the in-memory ledger."""
    unit = ContentUnit.new(
        course_id=course_id,
        kind="recorded_class",
        title=f"Unit {position}",
        position=position,
        created_at=created_at if created_at is not None else int(time.time()),
        status=status,  # type: ignore[arg-type]
        duration_seconds=duration_seconds,
    )
    content_ledger.add_unit(unit)  # type: ignore[union-attr]
    return unit
