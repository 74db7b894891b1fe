from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from tests.conftest import add_test_unit, auth, create_test_course, mint_token


def test_enroll_creates_then_returns_existing(client: TestClient, token: str) -> None:
    course = create_test_course()
    add_test_unit(course.id, position=1)

    first = client.post(f"/v1/courses/{course.id}/enroll", headers=auth(token))
    second = client.post(f"/v1/courses/{course.id}/enroll", headers=auth(token))

    assert first.status_code == 201
    assert second.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    body = first.json()
    assert body["learner_id"] == "test-user"
    assert body["course_id"] == str(course.id)
    assert body["is_active"] is True
    assert body["is_expired"] is False
    assert body["progress_percentage"] == 0
    assert body["completed_units"] == []


def test_enroll_unknown_course_is_404(client: TestClient, token: str) -> None:
    resp = client.post(f"/v1/courses/{uuid4()}/enroll", headers=auth(token))
    assert resp.status_code == 404
    assert resp.json()["detail"] == {"kind": "not_found", "reason": "course not found"}


def test_enroll_requires_token(client: TestClient) -> None:
    course = create_test_course()
    resp = client.post(f"/v1/courses/{course.id}/enroll")
    assert resp.status_code == 401


def test_enroll_rejects_malformed_course_id(client: TestClient, token: str) -> None:
    resp = client.post("/v1/courses/not-a-uuid/enroll", headers=auth(token))
    assert resp.status_code == 422


def test_enroll_after_revoke_reactivates_with_200(client: TestClient) -> None:
    token = mint_token("learner-1")
    course = create_test_course()
    enrollment_id = client.post(
        f"/v1/courses/{course.id}/enroll", headers=auth(token)
    ).json()["id"]
    client.post(f"/v1/enrollments/{enrollment_id}/revoke", headers=auth(token))

    resp = client.post(f"/v1/courses/{course.id}/enroll", headers=auth(token))

    assert resp.status_code == 200
    assert resp.json()["id"] == enrollment_id
    assert resp.json()["is_active"] is True
