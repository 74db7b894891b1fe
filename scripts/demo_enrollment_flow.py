"""Demo: enroll → report progress → resume → complete, using FastAPI TestClient.

Run with:
    python scripts/demo_enrollment_flow.py

Uses the in-memory repositories, so DATABASE_URL must not be set.
"""

from __future__ import annotations

import time

from fastapi.testclient import TestClient

from enrollment_service.main import app
from enrollment_service.models.course import ContentUnit, Course
from enrollment_service.repos.content_ledger import InMemoryContentLedger
from enrollment_service.services import token_service
from enrollment_service.services.enrollment_service import content_ledger

LEARNER = "demo-learner"


def main() -> None:
    if not isinstance(content_ledger, InMemoryContentLedger):
        raise SystemExit("unset DATABASE_URL to run the demo against memory")

    client = TestClient(app)
    headers = {
        "Authorization": f"Bearer {token_service.create_access_token(sub=LEARNER)}"
    }

    # ── Seed a course with three published units ────────────────────
    now = int(time.time())
    course = Course.new(slug="demo-course", title="Demo Course", status="ongoing")
    content_ledger.add_course(course)
    units = [
        ContentUnit.new(
            course_id=course.id,
            kind=kind,
            title=title,
            position=i,
            created_at=now,
            duration_seconds=duration,
        )
        for i, (kind, title, duration) in enumerate(
            [
                ("recorded_class", "Intro", 600),
                ("study_material", "Reading", None),
                ("test", "Quiz", 300),
            ]
        )
    ]
    for unit in units:
        content_ledger.add_unit(unit)

    # ── Step 1: enroll (201), enroll again (200, same record) ───────
    r = client.post(f"/v1/courses/{course.id}/enroll", headers=headers)
    enrollment_id = r.json()["id"]
    print(f"1. POST enroll           → {r.status_code}  id={enrollment_id}")
    r = client.post(f"/v1/courses/{course.id}/enroll", headers=headers)
    print(f"   POST enroll (again)   → {r.status_code}  id={r.json()['id']}")

    # ── Step 2: where to start ──────────────────────────────────────
    r = client.get(f"/v1/enrollments/{enrollment_id}/next", headers=headers)
    print(f"2. GET  next             → {r.status_code}  {r.json()}")

    # ── Step 3: partial then complete progress on each unit ─────────
    for step, unit in enumerate(units, start=3):
        client.post(
            f"/v1/enrollments/{enrollment_id}/progress",
            headers=headers,
            json={"content_id": str(unit.id), "progress": 40, "duration_watched": 60},
        )
        r = client.post(
            f"/v1/enrollments/{enrollment_id}/progress",
            headers=headers,
            json={"content_id": str(unit.id), "progress": 100, "duration_watched": 90},
        )
        body = r.json()
        print(
            f"{step}. POST progress {unit.title:<9}→ {r.status_code}  "
            f"progress={body['progress_percentage']}% "
            f"completed={body['is_completed']}"
        )

    # ── Step 4: resume point after completion ───────────────────────
    r = client.get(f"/v1/enrollments/{enrollment_id}/next", headers=headers)
    print(f"6. GET  next             → {r.status_code}  {r.json()}")

    # ── Step 5: stats, then revoke ──────────────────────────────────
    r = client.get("/v1/enrollments/stats", headers=headers)
    print(f"7. GET  stats            → {r.status_code}  {r.json()}")
    r = client.post(f"/v1/enrollments/{enrollment_id}/revoke", headers=headers)
    print(f"8. POST revoke           → {r.status_code}  active={r.json()['is_active']}")
    r = client.get(f"/v1/enrollments/{enrollment_id}", headers=headers)
    print(f"9. GET  enrollment       → {r.status_code}  {r.json()['detail']}")


if __name__ == "__main__":
    main()
