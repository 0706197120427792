"""Health check endpoints.

Provides:
- Liveness check with a database ping (/health)
- Process status (/health/status)
"""

import logging
import platform
import sys
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.config import get_settings
import db.database as database

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_start_time = time.monotonic()
_start_datetime = datetime.now(timezone.utc).isoformat()


@router.get("")
async def health_check():
    """
    Liveness check. Pings the database; returns 503 if it is unreachable.
    No authentication.
    """
    settings = get_settings()
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "ok"
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        db_status = "unavailable"

    body = {
        "success": db_status == "ok",
        "data": {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "ok" if db_status == "ok" else "degraded",
            "checks": {"database": db_status},
        },
    }
    if db_status != "ok":
        body["message"] = "Database unavailable"
        return JSONResponse(status_code=503, content=body)
    return body


@router.get("/status")
async def status_info() -> dict[str, Any]:
    """Process information: uptime, interpreter and environment."""
    settings = get_settings()
    return {
        "success": True,
        "data": {
            "environment": settings.ENVIRONMENT,
            "started_at": _start_datetime,
            "uptime_seconds": round(time.monotonic() - _start_time, 1),
            "python": sys.version.split()[0],
            "platform": platform.platform(),
        },
    }
