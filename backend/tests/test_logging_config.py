"""Tests for the structured logging setup."""

import logging

import pytest
import structlog
from fastapi import Depends

from conftest import headers_for
from core.logging_config import REDACTED, redact_secrets, setup_logging


@pytest.mark.unit
class TestRedactSecrets:
    def test_masks_top_level_credentials(self):
        event = redact_secrets(None, "info", {"event": "login", "password": "hunter2", "username": "ann"})
        assert event["password"] == REDACTED
        assert event["username"] == "ann"

    def test_masks_inside_params(self):
        event = redact_secrets(
            None, "info",
            {"event": "user created", "params": {"username": "ann", "Password": "x", "refresh_token": "t"}},
        )
        assert event["params"] == {"username": "ann", "Password": REDACTED, "refresh_token": REDACTED}

    def test_leaves_plain_events_alone(self):
        event = {"event": "Price deleted", "price_id": "p-1"}
        assert redact_secrets(None, "info", dict(event)) == event


@pytest.mark.unit
class TestSetupLogging:
    def test_routes_root_logger_through_one_handler(self):
        setup_logging()
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
        assert logging.getLogger("passlib").level == logging.ERROR


@pytest.mark.unit
class TestRequestContext:
    """Fields bound while a request is handled."""

    async def test_request_fields_are_bound(self, app, client):
        @app.get("/api/v1/_test/log-context")
        async def log_context():
            return structlog.contextvars.get_contextvars()

        resp = await client.get("/api/v1/_test/log-context", headers={"X-Request-ID": "trace-42"})
        bound = resp.json()
        assert bound["request_id"] == "trace-42"
        assert bound["method"] == "GET"
        assert bound["path"] == "/api/v1/_test/log-context"
        assert "user" not in bound

    async def test_principal_is_bound_after_auth(self, app, client, admin_user):
        from app.dependencies import get_current_principal

        @app.get("/api/v1/_test/log-principal")
        async def log_principal(principal=Depends(get_current_principal)):
            return structlog.contextvars.get_contextvars()

        resp = await client.get("/api/v1/_test/log-principal", headers=headers_for(admin_user))
        bound = resp.json()
        assert bound["user"] == "root-admin"
        assert bound["user_id"] == admin_user.id

        anonymous = (await client.get("/api/v1/_test/log-principal")).json()
        assert "user" not in anonymous
