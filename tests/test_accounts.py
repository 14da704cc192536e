"""
Tests for role resolution and the authentication API.
"""

import pytest

from request_desk.accounts.domain import resolve_role, view_for
from request_desk.config import Role, settings


# ---------------------------------------------------------------------------
# Role resolution
# ---------------------------------------------------------------------------

class TestResolveRole:
    def test_no_rows_is_submitter(self):
        assert resolve_role([]) == Role.SUBMITTER

    def test_submitter_row(self):
        assert resolve_role(["submitter"]) == Role.SUBMITTER

    def test_handler_row_wins(self):
        assert resolve_role(["submitter", "handler"]) == Role.HANDLER

    def test_unknown_role_is_submitter(self):
        assert resolve_role(["admin"]) == Role.SUBMITTER

    def test_views(self):
        assert view_for(Role.HANDLER) == "handler"
        assert view_for(Role.SUBMITTER) == "submitter"


# ---------------------------------------------------------------------------
# Auth API
# ---------------------------------------------------------------------------

class TestAuthAPI:
    async def test_signup_then_signin(self, client):
        signup = await client.post(
            "/auth/signup",
            json={"email": "carla@example.org", "password": "secret123", "name": "Carla"},
        )
        assert signup.status_code == 201
        assert signup.json()["role"] == "submitter"
        assert signup.json()["user"]["display_name"] == "Carla"

        signin = await client.post(
            "/auth/signin", json={"email": "carla@example.org", "password": "secret123"}
        )
        assert signin.status_code == 200
        body = signin.json()
        assert body["role"] == "submitter"
        assert body["view"] == "submitter"
        assert body["token_type"] == "bearer"

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.json()["user"]["email"] == "carla@example.org"
        assert me.json()["role"] == "submitter"

    async def test_bad_password(self, client, submitter):
        response = await client.post(
            "/auth/signin", json={"email": "amina@example.org", "password": "wrong"}
        )
        assert response.status_code == 401

    async def test_handler_signin_routes_to_handler_view(self, client, handler):
        response = await client.post(
            "/auth/signin", json={"email": "daniel@example.org", "password": "secret123"}
        )
        assert response.json()["role"] == "handler"
        assert response.json()["view"] == "handler"

    async def test_handler_self_signup(self, client):
        response = await client.post(
            "/auth/signup",
            json={"email": "hugo@example.org", "password": "secret123", "name": "Hugo", "role": "handler"},
        )
        assert response.status_code == 201
        assert response.json()["role"] == "handler"

        signin = await client.post("/auth/signin", json={"email": "hugo@example.org", "password": "secret123"})
        assert signin.json()["role"] == "handler"
        assert signin.json()["view"] == "handler"

    async def test_handler_self_signup_refused_when_disabled(self, client, monkeypatch):
        monkeypatch.setattr(settings, "allow_handler_signup", False)

        response = await client.post(
            "/auth/signup",
            json={"email": "eve@example.org", "password": "secret123", "name": "Eve", "role": "handler"},
        )
        assert response.status_code == 422

        signin = await client.post("/auth/signin", json={"email": "eve@example.org", "password": "secret123"})
        assert signin.status_code == 401

    async def test_user_without_role_rows_is_submitter(self, client, identity):
        user = await identity.sign_up("nora@example.org", "secret123", "Nora")
        token = identity.issue_token(user)

        me = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["role"] == "submitter"
        assert me.json()["view"] == "submitter"

    async def test_signout_revokes_token(self, client, submitter, identity):
        response = await client.post("/auth/signout", headers=submitter.headers)
        assert response.status_code == 204
        assert submitter.token in identity.revoked

        me = await client.get("/auth/me", headers=submitter.headers)
        assert me.status_code == 401

    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "not-an-email", "password": "secret123", "name": "X"},
            {"email": "x@example.org", "password": "123", "name": "X"},
            {"email": "x@example.org", "password": "secret123", "name": "  "},
            {"email": "x@example.org", "password": "secret123", "name": "X", "role": "admin"},
        ],
    )
    async def test_signup_validates_payload(self, client, payload):
        response = await client.post("/auth/signup", json=payload)
        assert response.status_code == 422
