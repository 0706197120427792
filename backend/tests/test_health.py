"""Tests for health check endpoints."""

import pytest


@pytest.mark.unit
class TestHealth:
    """Health endpoint tests."""

    async def test_health_v1(self, client):
        """GET /api/v1/health returns 200 with a database check."""
        resp = await client.get("/api/v1/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["status"] == "ok"
        assert body["data"]["checks"]["database"] == "ok"
        assert "version" in body["data"]

    async def test_health_root(self, client):
        """GET /api/health returns 200 (unversioned, for load balancer checks)."""
        resp = await client.get("/api/health")
        assert resp.status_code == 200

    async def test_status(self, client):
        resp = await client.get("/api/v1/health/status")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["environment"] == "testing"
        assert "uptime_seconds" in data

    async def test_response_has_request_id(self, client):
        """Every response should have X-Request-ID header."""
        resp = await client.get("/api/v1/health")
        assert "x-request-id" in resp.headers
        assert "x-process-time" in resp.headers

    async def test_custom_request_id_propagated(self, client):
        """If client sends X-Request-ID, it should be echoed back."""
        custom_id = "test-request-12345"
        resp = await client.get(
            "/api/v1/health",
            headers={"X-Request-ID": custom_id},
        )
        assert resp.headers.get("x-request-id") == custom_id

    async def test_security_headers(self, client):
        resp = await client.get("/api/health")
        assert resp.headers["x-content-type-options"] == "nosniff"
        assert resp.headers["x-frame-options"] == "DENY"

    async def test_unknown_route_uses_failure_envelope(self, client):
        resp = await client.get("/api/v1/nowhere")
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "message": "Not Found"}


@pytest.mark.unit
class TestErrorEnvelope:
    """Failures raised inside handlers."""

    async def test_bad_request_error_is_400(self, app, client):
        from core.exceptions import BadRequestError

        @app.get("/api/v1/_test/bad-request")
        async def bad_request():
            raise BadRequestError("Service does not exist")

        resp = await client.get("/api/v1/_test/bad-request")
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "Service does not exist"}

    async def test_programming_value_error_is_500(self, app, client):
        @app.get("/api/v1/_test/broken")
        async def broken():
            raise ValueError("Organization scope check requires a hierarchy snapshot")

        resp = await client.get("/api/v1/_test/broken")
        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert "x-request-id" in resp.headers
