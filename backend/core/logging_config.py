"""Structured logging for the price administration backend.

Every record, whether emitted through ``logging.getLogger(__name__)`` or
structlog, passes the same processor chain:

- request context bound by ``RequestTrackingMiddleware`` (``request_id``,
  ``method``, ``path``) and by the auth dependency (``user``, ``user_id``)
- fields passed as ``extra={...}`` on stdlib calls
- credential masking, so passwords and tokens never reach the log sink

Rendered as colored console lines in development and JSON elsewhere.
"""

import logging
import sys
from typing import Any

import structlog
from app.config import get_settings

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "new_password",
        "old_password",
        "password_hash",
        "access_token",
        "refresh_token",
        "authorization",
        "secret_key",
    }
)

REDACTED = "***"


def redact_secrets(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Mask credential fields, including inside dict-valued fields such as ``params``."""
    for key, value in list(event_dict.items()):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, dict):
            event_dict[key] = {
                k: (REDACTED if str(k).lower() in SENSITIVE_KEYS else v) for k, v in value.items()
            }
    return event_dict


def bind_request_context(**values: Any) -> None:
    """Attach fields to every record logged while handling the current request."""
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in values.items() if value is not None}
    )


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def setup_logging() -> None:
    """Configure structlog and route the stdlib root logger through it."""
    settings = get_settings()

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.stdlib.PositionalArgumentsFormatter(),
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development or settings.LOG_FORMAT == "text":
        renderer = structlog.dev.ConsoleRenderer(colors=settings.is_development)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Request lines come from RequestTrackingMiddleware instead
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.DEBUG if settings.SQLALCHEMY_ECHO else logging.WARNING
    )
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
