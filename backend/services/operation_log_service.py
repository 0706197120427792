"""Operation log service: records and lists administrative mutations."""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.access import Principal
from core.constants import EXPORT_ROW_LIMIT, OperationAction, OperationModule, OperationStatus
from core.logging_config import REDACTED, SENSITIVE_KEYS
from core.utils import as_utc
from db.models.operation_log import OperationLog
from db.models.user import User
from services.base import BaseService

logger = logging.getLogger(__name__)


def _sanitize(params: Optional[dict]) -> Optional[dict]:
    if not params:
        return None
    return {
        key: (REDACTED if key.lower() in SENSITIVE_KEYS else value)
        for key, value in params.items()
    }


class OperationLogService(BaseService[OperationLog]):
    """Append-only access to the ``operation_logs`` table."""

    def __init__(self, db: AsyncSession):
        super().__init__(OperationLog, db)

    async def record(
        self,
        principal: Optional[Principal],
        module: OperationModule,
        operation: OperationAction,
        request: Optional[Request] = None,
        params: Optional[dict[str, Any]] = None,
        status: OperationStatus = OperationStatus.SUCCESS,
        error_message: Optional[str] = None,
    ) -> OperationLog:
        """Write one log row for a mutation performed by ``principal``."""
        entry = OperationLog(
            user_id=principal.id if principal else None,
            module=module.value,
            operation=operation.value,
            method=request.method if request else None,
            request_url=request.url.path if request else None,
            request_params=_sanitize(params),
            ip_address=_client_ip(request),
            status=int(status),
            error_message=error_message,
        )
        self.db.add(entry)
        await self.db.flush()
        logger.info(
            "Operation %s/%s by user=%s status=%s",
            entry.module,
            entry.operation,
            entry.user_id,
            entry.status,
        )
        return entry

    def _conditions(
        self,
        module: Optional[str] = None,
        user_id: Optional[str] = None,
        status: Optional[int] = None,
        operation: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> list:
        conditions = [OperationLog.is_deleted == False]
        if module:
            conditions.append(OperationLog.module == module)
        if user_id:
            conditions.append(OperationLog.user_id == user_id)
        if status is not None:
            conditions.append(OperationLog.status == status)
        if operation:
            conditions.append(OperationLog.operation.contains(operation))
        if start_date:
            conditions.append(OperationLog.created_at >= as_utc(start_date))
        if end_date:
            conditions.append(OperationLog.created_at <= as_utc(end_date))
        return conditions

    async def list_logs(self, offset: int = 0, limit: int = 50, **filters):
        """Newest first, filtered by module, user, status, operation substring and date range.

        Returns:
            Tuple of (items, total_count)
        """
        conditions = self._conditions(**filters)
        result = await self.db.execute(
            select(OperationLog)
            .where(*conditions)
            .order_by(OperationLog.created_at.desc(), OperationLog.id)
            .offset(offset)
            .limit(limit)
        )
        total = (
            await self.db.execute(select(func.count()).select_from(OperationLog).where(*conditions))
        ).scalar() or 0
        return result.scalars().all(), total

    async def export_rows(self, limit: int = EXPORT_ROW_LIMIT, **filters) -> list:
        """Filtered entries joined with the acting username, newest first."""
        result = await self.db.execute(
            select(
                OperationLog.created_at,
                User.username,
                OperationLog.module,
                OperationLog.operation,
                OperationLog.method,
                OperationLog.request_url,
                OperationLog.ip_address,
                OperationLog.status,
                OperationLog.error_message,
            )
            .join(User, OperationLog.user_id == User.id, isouter=True)
            .where(*self._conditions(**filters))
            .order_by(OperationLog.created_at.desc(), OperationLog.id)
            .limit(limit)
        )
        return result.all()


def _client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
