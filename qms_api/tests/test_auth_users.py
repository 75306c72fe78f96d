"""
API tests for sign-up, sign-in and user administration.
"""

import json

from httpx import AsyncClient

OPERATOR_PASSWORD = "press-line-4"


class TestAuth:
    async def test_signup_creates_pending_account(self, client: AsyncClient, users):
        resp = await client.post(
            "/api/v1/auth/signup",
            json={"name": "Jo Glue", "username": "jo", "password": "secret1", "departmentId": "2"},
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "Pending"
        assert body["role"] == "User"
        assert body["email"] == "jo@frankston.com"

    async def test_signup_rejects_taken_username(self, client: AsyncClient, users):
        resp = await client.post("/api/v1/auth/signup", json={"name": "Sam", "username": "sam", "password": "x"})
        assert resp.status_code == 409
        assert resp.json()["error"]["type"] == "workflow_error"

    async def test_login_returns_tokens(self, client: AsyncClient, users):
        resp = await client.post("/api/v1/auth/login", data={"username": "sam", "password": OPERATOR_PASSWORD})
        assert resp.status_code == 200
        token = resp.json()["access_token"]

        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["username"] == "sam"
        assert me.json()["systemRoleId"] == "R4"

    async def test_login_wrong_password(self, client: AsyncClient, users):
        resp = await client.post("/api/v1/auth/login", data={"username": "sam", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["error"]["type"] == "authentication_failed"

    async def test_pending_account_cannot_sign_in(self, client: AsyncClient, users):
        resp = await client.post("/api/v1/auth/login", data={"username": "pat", "password": "welcome1"})
        assert resp.status_code == 403
        assert "pending" in resp.json()["error"]["message"].lower()

    async def test_access_code_signs_in_super_admin(self, client: AsyncClient, users):
        resp = await client.post("/api/v1/auth/access-code", json={"code": "admin123"})
        assert resp.status_code == 200
        token = resp.json()["access_token"]
        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["id"] == "100"

    async def test_bad_access_code(self, client: AsyncClient, users):
        resp = await client.post("/api/v1/auth/access-code", json={"code": "guess"})
        assert resp.status_code == 401

    async def test_refresh_issues_new_pair(self, client: AsyncClient, users):
        login = await client.post("/api/v1/auth/login", data={"username": "sam", "password": OPERATOR_PASSWORD})
        resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": login.json()["refresh_token"]})
        assert resp.status_code == 200
        assert resp.json()["token_type"] == "bearer"

    async def test_missing_token_is_rejected(self, client: AsyncClient, users):
        resp = await client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["type"] == "http_error"


class TestUserAdministration:
    async def test_super_admin_sees_everyone(self, client: AsyncClient, users, auth):
        resp = await client.get("/api/v1/users", headers=auth(users["super"]))
        assert resp.status_code == 200
        assert {u["id"] for u in resp.json()} == {"100", "200", "300", "400", "500"}

    async def test_admin_does_not_see_super_admins(self, client: AsyncClient, users, auth):
        resp = await client.get("/api/v1/users", headers=auth(users["admin"]))
        assert resp.status_code == 200
        assert "100" not in {u["id"] for u in resp.json()}

    async def test_manager_sees_direct_reports_only(self, client: AsyncClient, users, auth):
        resp = await client.get("/api/v1/users", headers=auth(users["manager"]))
        assert resp.status_code == 200
        assert [u["id"] for u in resp.json()] == ["400"]

    async def test_plain_user_has_no_access(self, client: AsyncClient, users, auth):
        resp = await client.get("/api/v1/users", headers=auth(users["operator"]))
        assert resp.status_code == 403

    async def test_approve_pending_user(self, client: AsyncClient, users, auth):
        resp = await client.post("/api/v1/users/500/approve", headers=auth(users["admin"]))
        assert resp.status_code == 200
        assert resp.json()["status"] == "Active"

        again = await client.post("/api/v1/users/500/approve", headers=auth(users["admin"]))
        assert again.status_code == 409

    async def test_toggle_then_obsolete(self, client: AsyncClient, users, auth):
        headers = auth(users["admin"])
        early = await client.post("/api/v1/users/400/obsolete", headers=headers)
        assert early.status_code == 409

        toggled = await client.post("/api/v1/users/400/toggle-status", headers=headers)
        assert toggled.json()["status"] == "Inactive"

        retired = await client.post("/api/v1/users/400/obsolete", headers=headers)
        assert retired.status_code == 200
        assert retired.json()["status"] == "Obsolete"

    async def test_cannot_toggle_own_account(self, client: AsyncClient, users, auth):
        resp = await client.post("/api/v1/users/200/toggle-status", headers=auth(users["admin"]))
        assert resp.status_code == 409

    async def test_only_super_admin_grants_super_admin(self, client: AsyncClient, users, auth):
        resp = await client.patch(
            "/api/v1/users/400", json={"role": "Super Admin"}, headers=auth(users["admin"])
        )
        assert resp.status_code == 403

    async def test_deactivated_user_token_is_refused(self, client: AsyncClient, users, auth):
        await client.post("/api/v1/users/400/toggle-status", headers=auth(users["admin"]))
        resp = await client.get("/api/v1/auth/me", headers=auth(users["operator"]))
        assert resp.status_code == 403

    async def test_refresh_token_is_not_an_access_token(self, client: AsyncClient, users):
        login = await client.post("/api/v1/auth/login", data={"username": "sam", "password": OPERATOR_PASSWORD})
        refresh = login.json()["refresh_token"]
        resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {refresh}"})
        assert resp.status_code == 401


async def test_health_reports_database(client: AsyncClient):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Healthy", "details": {"database": "ok"}}
    assert resp.headers["X-Correlation-ID"]


def test_openapi_document_is_written(tmp_path):
    from qms.api.generate_openapi import main

    written = main([str(tmp_path / "openapi.json")])
    document = json.loads(written.read_text())
    assert "/api/v1/ncr/{ncr_id}/disposition" in document["paths"]
    assert document["x-error-envelope"]["correlationHeader"] == "X-Correlation-ID"
