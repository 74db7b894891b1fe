"""HTTP behaviour of /v1/enrollments: status mapping, payloads, ownership."""

from __future__ import annotations

import time
from uuid import uuid4

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from tests.conftest import add_test_unit, auth, create_test_course, mint_token


def _enroll(client: TestClient, token: str, course_id) -> str:
    resp = client.post(f"/v1/courses/{course_id}/enroll", headers=auth(token))
    assert resp.status_code in (200, 201)
    return resp.json()["id"]


def _report(
    client: TestClient,
    token: str,
    enrollment_id: str,
    content_id,
    progress: float = 100,
    watched: int = 10,
):
    return client.post(
        f"/v1/enrollments/{enrollment_id}/progress",
        headers=auth(token),
        json={
            "content_id": str(content_id),
            "progress": progress,
            "duration_watched": watched,
        },
    )


# ---- progress ----


def test_progress_updates_percentage(client: TestClient, token: str) -> None:
    course = create_test_course()
    a = add_test_unit(course.id, position=1, duration_seconds=60)
    add_test_unit(course.id, position=2, duration_seconds=0)
    c = add_test_unit(course.id, position=3, duration_seconds=40)
    enrollment_id = _enroll(client, token, course.id)

    _report(client, token, enrollment_id, a.id)
    resp = _report(client, token, enrollment_id, c.id, watched=30)

    assert resp.status_code == 200
    body = resp.json()
    assert body["progress_percentage"] == 99
    assert body["is_completed"] is False
    assert body["total_time_spent"] == 40
    assert {u["content_id"] for u in body["completed_units"]} == {str(a.id), str(c.id)}


def test_progress_completes_course(client: TestClient, token: str) -> None:
    course = create_test_course()
    unit = add_test_unit(course.id, position=1)
    enrollment_id = _enroll(client, token, course.id)

    resp = _report(client, token, enrollment_id, unit.id)

    body = resp.json()
    assert body["progress_percentage"] == 100
    assert body["is_completed"] is True
    assert body["completed_at"] is not None


def test_progress_out_of_range_is_422(client: TestClient, token: str) -> None:
    course = create_test_course()
    unit = add_test_unit(course.id, position=1)
    enrollment_id = _enroll(client, token, course.id)

    resp = _report(client, token, enrollment_id, unit.id, progress=150)

    assert resp.status_code == 422
    assert resp.json()["detail"]["kind"] == "invalid"


def test_negative_watch_time_is_422(client: TestClient, token: str) -> None:
    course = create_test_course()
    unit = add_test_unit(course.id, position=1)
    enrollment_id = _enroll(client, token, course.id)

    resp = _report(client, token, enrollment_id, unit.id, progress=10, watched=-3)

    assert resp.status_code == 422
    assert resp.json()["detail"]["kind"] == "invalid"


def test_progress_on_draft_content_is_404(client: TestClient, token: str) -> None:
    course = create_test_course()
    draft = add_test_unit(course.id, position=1, status="draft")
    enrollment_id = _enroll(client, token, course.id)

    resp = _report(client, token, enrollment_id, draft.id)

    assert resp.status_code == 404
    assert resp.json()["detail"] == {"kind": "not_found", "reason": "content not found"}


def test_progress_on_someone_elses_enrollment_is_403(client: TestClient) -> None:
    course = create_test_course()
    unit = add_test_unit(course.id, position=1)
    enrollment_id = _enroll(client, mint_token("alice"), course.id)

    resp = _report(client, mint_token("mallory"), enrollment_id, unit.id)

    assert resp.status_code == 403
    assert resp.json()["detail"]["kind"] == "forbidden"


def test_progress_after_expiry_is_403(client: TestClient, token: str) -> None:
    # schedule ended long enough ago that the grace window is over
    course = create_test_course(schedule_end=int(time.time()) - 31 * 24 * 60 * 60)
    unit = add_test_unit(course.id, position=1)
    enrollment_id = _enroll(client, token, course.id)

    resp = _report(client, token, enrollment_id, unit.id)

    assert resp.status_code == 403
    assert resp.json()["detail"] == {"kind": "forbidden", "reason": "access expired"}


def test_progress_on_unknown_enrollment_is_404(client: TestClient, token: str) -> None:
    resp = _report(client, token, str(uuid4()), uuid4())
    assert resp.status_code == 404


def test_progress_counts_results_in_metrics(client: TestClient, token: str) -> None:
    course = create_test_course()
    unit = add_test_unit(course.id, position=1)
    enrollment_id = _enroll(client, token, course.id)

    def sample(result: str) -> float:
        value = REGISTRY.get_sample_value(
            "progress_updates_total", {"result": result}
        )
        return value or 0.0

    ok_before, invalid_before = sample("ok"), sample("invalid")
    _report(client, token, enrollment_id, unit.id)
    _report(client, token, enrollment_id, unit.id, progress=-1)

    assert sample("ok") - ok_before == 1
    assert sample("invalid") - invalid_before == 1


# ---- reads ----


def test_get_enrollment_returns_record(client: TestClient, token: str) -> None:
    course = create_test_course()
    enrollment_id = _enroll(client, token, course.id)

    resp = client.get(f"/v1/enrollments/{enrollment_id}", headers=auth(token))

    assert resp.status_code == 200
    assert resp.json()["id"] == enrollment_id
    assert resp.json()["last_accessed_at"] is not None


def test_get_enrollment_of_other_learner_is_403(client: TestClient) -> None:
    course = create_test_course()
    enrollment_id = _enroll(client, mint_token("alice"), course.id)

    resp = client.get(
        f"/v1/enrollments/{enrollment_id}", headers=auth(mint_token("bob"))
    )
    assert resp.status_code == 403


def test_next_content_walks_units(client: TestClient, token: str) -> None:
    course = create_test_course()
    later = add_test_unit(course.id, position=2)
    first = add_test_unit(course.id, position=1)
    enrollment_id = _enroll(client, token, course.id)

    resp = client.get(f"/v1/enrollments/{enrollment_id}/next", headers=auth(token))
    assert resp.status_code == 200
    assert resp.json() == {
        "progress_percentage": 0,
        "next_unit_id": str(first.id),
        "completed_count": 0,
        "total_count": 2,
        "course_completed": False,
    }

    _report(client, token, enrollment_id, first.id)
    resp = client.get(f"/v1/enrollments/{enrollment_id}/next", headers=auth(token))
    assert resp.json()["next_unit_id"] == str(later.id)

    _report(client, token, enrollment_id, later.id)
    resp = client.get(f"/v1/enrollments/{enrollment_id}/next", headers=auth(token))
    assert resp.json()["next_unit_id"] is None
    assert resp.json()["course_completed"] is True


def test_list_enrollments_paginates(client: TestClient, token: str) -> None:
    for i in range(3):
        _enroll(client, token, create_test_course(slug=f"course-{i}").id)

    resp = client.get("/v1/enrollments?limit=2", headers=auth(token))

    assert resp.status_code == 200
    body = resp.json()
    assert body["count"] == 3
    assert len(body["data"]) == 2
    assert body["pagination"] == {
        "page": 1,
        "pages": 2,
        "limit": 2,
        "has_prev": False,
        "has_next": True,
    }


def test_list_enrollments_only_shows_callers_records(client: TestClient) -> None:
    course = create_test_course()
    _enroll(client, mint_token("alice"), course.id)

    resp = client.get("/v1/enrollments", headers=auth(mint_token("bob")))

    assert resp.json()["count"] == 0
    assert resp.json()["data"] == []


def test_list_enrollments_rejects_bad_sort(client: TestClient, token: str) -> None:
    resp = client.get("/v1/enrollments?sort=title", headers=auth(token))
    assert resp.status_code == 422
    assert resp.json()["detail"]["kind"] == "invalid"


def test_learning_stats(client: TestClient, token: str) -> None:
    done = create_test_course(slug="done")
    unit = add_test_unit(done.id, position=1)
    done_id = _enroll(client, token, done.id)
    _enroll(client, token, create_test_course(slug="fresh").id)
    _report(client, token, done_id, unit.id, watched=120)

    resp = client.get("/v1/enrollments/stats", headers=auth(token))

    assert resp.status_code == 200
    assert resp.json() == {
        "total_enrolled": 2,
        "active_courses": 2,
        "completed_courses": 1,
        "completion_rate": 50.0,
        "avg_progress": 50.0,
        "total_time_spent": 120,
    }


# ---- revoke ----


def test_revoke_then_progress_is_forbidden(client: TestClient, token: str) -> None:
    course = create_test_course()
    unit = add_test_unit(course.id, position=1)
    enrollment_id = _enroll(client, token, course.id)

    resp = client.post(
        f"/v1/enrollments/{enrollment_id}/revoke",
        headers=auth(token),
        json={"reason": "changed my mind"},
    )
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False
    assert resp.json()["revoked_reason"] == "changed my mind"

    resp = _report(client, token, enrollment_id, unit.id)
    assert resp.status_code == 403
    assert resp.json()["detail"]["reason"] == "access revoked"


def test_revoke_without_body_uses_default_reason(
    client: TestClient, token: str
) -> None:
    course = create_test_course()
    enrollment_id = _enroll(client, token, course.id)

    resp = client.post(f"/v1/enrollments/{enrollment_id}/revoke", headers=auth(token))

    assert resp.status_code == 200
    assert resp.json()["revoked_reason"] == "Revoked by user"


def test_revoke_other_learners_enrollment_is_404(client: TestClient) -> None:
    course = create_test_course()
    enrollment_id = _enroll(client, mint_token("alice"), course.id)

    resp = client.post(
        f"/v1/enrollments/{enrollment_id}/revoke", headers=auth(mint_token("bob"))
    )
    assert resp.status_code == 404


def test_admin_can_revoke_any_enrollment(
    client: TestClient, admin_token: str
) -> None:
    course = create_test_course()
    enrollment_id = _enroll(client, mint_token("alice"), course.id)

    resp = client.post(
        f"/v1/enrollments/{enrollment_id}/revoke", headers=auth(admin_token)
    )
    assert resp.status_code == 200
    assert resp.json()["learner_id"] == "alice"
    assert resp.json()["is_active"] is False
