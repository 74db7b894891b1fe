from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, create_test_course, mint_token


def _revoked_enrollment(client: TestClient) -> str:
    token = mint_token("alice")
    course = create_test_course()
    enrollment_id = client.post(
        f"/v1/courses/{course.id}/enroll", headers=auth(token)
    ).json()["id"]
    client.post(f"/v1/enrollments/{enrollment_id}/revoke", headers=auth(token))
    return enrollment_id


def test_admin_reads_revoked_enrollment(
    client: TestClient, admin_token: str
) -> None:
    enrollment_id = _revoked_enrollment(client)

    resp = client.get(f"/v1/admin/enrollments/{enrollment_id}", headers=auth(admin_token))

    assert resp.status_code == 200
    assert resp.json()["id"] == enrollment_id
    assert resp.json()["is_active"] is False


def test_admin_read_of_unknown_enrollment_is_404(
    client: TestClient, admin_token: str
) -> None:
    resp = client.get(f"/v1/admin/enrollments/{uuid4()}", headers=auth(admin_token))
    assert resp.status_code == 404


@pytest.mark.parametrize(
    ("roles", "expected"),
    [(["user"], 403), (None, 403), (["admin"], 200)],
)
def test_admin_route_requires_admin_role(
    client: TestClient, roles: list[str] | None, expected: int
) -> None:
    enrollment_id = _revoked_enrollment(client)
    token = mint_token("someone", roles=roles)

    resp = client.get(f"/v1/admin/enrollments/{enrollment_id}", headers=auth(token))
    assert resp.status_code == expected


def test_admin_route_without_token_is_401(client: TestClient) -> None:
    resp = client.get(f"/v1/admin/enrollments/{uuid4()}")
    assert resp.status_code == 401


def test_invalid_token_is_401(client: TestClient) -> None:
    resp = client.get("/v1/enrollments", headers=auth("not-a-jwt"))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid token"
