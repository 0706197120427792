"""Tests for authentication and security utilities."""

import jwt
import pytest

from conftest import TEST_PASSWORD, headers_for
from core.exceptions import UnauthorizedError
from core.security import (
    ALGORITHM,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    hash_password,
    settings,
    verify_password,
    verify_token,
)


@pytest.mark.unit
class TestPasswordHashing:
    """Password hash/verify tests."""

    def test_hash_and_verify(self):
        raw = "SuperSecret123!"
        hashed = hash_password(raw)
        assert hashed != raw
        assert verify_password(raw, hashed) is True

    def test_wrong_password_rejected(self):
        hashed = hash_password("correct")
        assert verify_password("wrong", hashed) is False

    def test_different_hashes_for_same_password(self):
        """Each call should produce a different hash (salt)."""
        h1 = hash_password("same")
        h2 = hash_password("same")
        assert h1 != h2


@pytest.mark.unit
class TestJWT:
    """JWT token creation and decoding tests."""

    def test_create_and_decode_token(self):
        token = create_access_token(
            user_id="user-123",
            username="dispatcher",
            org_id="org-456",
        )
        payload = decode_access_token(token)
        assert payload["sub"] == "user-123"
        assert payload["username"] == "dispatcher"
        assert payload["org_id"] == "org-456"
        assert payload["type"] == "access"

    def test_token_carries_no_permissions(self):
        payload = decode_access_token(create_access_token(user_id="u", username="x"))
        assert "permissions" not in payload
        assert "roles" not in payload

    def test_invalid_token_raises(self):
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token("not.a.valid.token")

    def test_verify_token(self):
        payload = verify_token(create_refresh_token(user_id="u1", username="x"))
        assert payload.sub == "u1"
        assert payload.type == "refresh"

    def test_verify_rejects_tampered_and_incomplete_tokens(self):
        with pytest.raises(UnauthorizedError) as exc_info:
            verify_token("garbage")
        assert exc_info.value.message == "Please log in"

        forged = jwt.encode({"sub": "u1", "username": "x"}, "other-key", algorithm=ALGORITHM)
        with pytest.raises(UnauthorizedError):
            verify_token(forged)

        no_subject = jwt.encode({"username": "x"}, settings.SECRET_KEY, algorithm=ALGORITHM)
        with pytest.raises(UnauthorizedError):
            verify_token(no_subject)


@pytest.mark.integration
class TestAuthEndpoints:
    """Login, refresh, profile and menu through HTTP."""

    async def test_login_success(self, client, make_user, org_tree):
        await make_user(org=org_tree["branch"], roles=["internal"], username="clerk")
        resp = await client.post(
            "/api/v1/auth/login",
            json={"username": "clerk", "password": TEST_PASSWORD},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        data = body["data"]
        assert data["access_token"] and data["refresh_token"]
        assert data["token_type"] == "bearer"
        assert data["user"]["username"] == "clerk"
        assert data["user"]["roles"] == ["internal"]
        assert "price:view" in data["user"]["permissions"]
        assert data["user"]["is_admin"] is False

    async def test_login_wrong_password(self, client, make_user):
        await make_user(username="clerk")
        resp = await client.post(
            "/api/v1/auth/login",
            json={"username": "clerk", "password": "wrong"},
        )
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Invalid username or password"}

    async def test_login_disabled_account_looks_like_wrong_password(self, client, make_user):
        await make_user(username="locked", is_active=False)
        resp = await client.post(
            "/api/v1/auth/login",
            json={"username": "locked", "password": TEST_PASSWORD},
        )
        assert resp.status_code == 401
        assert resp.json()["message"] == "Invalid username or password"

    async def test_login_validation_error(self, client):
        resp = await client.post("/api/v1/auth/login", json={"username": "clerk"})
        assert resp.status_code == 422
        body = resp.json()
        assert body["success"] is False
        assert "password" in body["message"]

    async def test_refresh(self, client, make_user):
        await make_user(username="driver")
        login = await client.post(
            "/api/v1/auth/login",
            json={"username": "driver", "password": TEST_PASSWORD},
        )
        refresh_token = login.json()["data"]["refresh_token"]

        resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": refresh_token})
        assert resp.status_code == 200
        assert resp.json()["data"]["access_token"]

    async def test_refresh_rejects_access_token(self, client, make_user):
        user = await make_user()
        access = create_access_token(user_id=user.id, username=user.username)
        resp = await client.post("/api/v1/auth/refresh", json={"refresh_token": access})
        assert resp.status_code == 401

    async def test_access_endpoint_rejects_refresh_token(self, client, make_user):
        user = await make_user()
        refresh = create_refresh_token(user_id=user.id, username=user.username)
        resp = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {refresh}"})
        assert resp.status_code == 401

    async def test_me(self, client, make_user, org_tree):
        user = await make_user(org=org_tree["region"], roles=["external"])
        resp = await client.get("/api/v1/auth/me", headers=headers_for(user))
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["id"] == user.id
        assert data["organization_name"] == "North Region"
        assert data["permissions"] == ["price:view"]

    async def test_me_requires_token(self, client):
        resp = await client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "message": "Please log in"}

    async def test_me_with_garbage_token(self, client):
        resp = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert resp.json()["message"] == "Please log in"

    async def test_deleted_user_token_is_unauthenticated(self, client, make_user, db_session):
        user = await make_user()
        user.soft_delete()
        await db_session.commit()
        resp = await client.get("/api/v1/auth/me", headers=headers_for(user))
        assert resp.status_code == 401

    async def test_menu_for_external_user(self, client, make_user):
        user = await make_user(roles=["external"])
        resp = await client.get("/api/v1/auth/menu", headers=headers_for(user))
        assert resp.status_code == 200
        sections = resp.json()["data"]
        assert [s["key"] for s in sections] == ["dashboard", "price"]
        assert [c["key"] for c in sections[1]["children"]] == ["price-list"]

    async def test_menu_for_admin(self, client, admin_user, auth_headers):
        resp = await client.get("/api/v1/auth/menu", headers=auth_headers)
        keys = [s["key"] for s in resp.json()["data"]]
        assert keys == ["dashboard", "price", "user", "service", "system"]
