"""Operation log endpoints: filtered listing and CSV export."""

import csv
import io
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams, dump_many, paginated
from api.schemas.price import OperationLogResponse
from app.dependencies import get_db
from core.access import Principal
from core.constants import OperationAction, OperationModule
from core.permissions import PermissionCode
from core.rbac import require_permission
from core.utils import utc_now
from services.operation_log_service import OperationLogService

router = APIRouter(tags=["logs"])


def _timestamp() -> str:
    return utc_now().strftime("%Y%m%d_%H%M%S")


class LogFilters:
    """Query parameters shared by the listing and the export."""

    def __init__(
        self,
        module: Optional[str] = Query(default=None),
        user_id: Optional[str] = Query(default=None),
        status: Optional[int] = Query(default=None, ge=0, le=1),
        operation: Optional[str] = Query(default=None, description="Substring of the operation name"),
        start_date: Optional[datetime] = Query(default=None),
        end_date: Optional[datetime] = Query(default=None),
    ):
        self.module = module
        self.user_id = user_id
        self.status = status
        self.operation = operation
        self.start_date = start_date
        self.end_date = end_date

    def as_dict(self) -> dict:
        return dict(vars(self))

    def as_params(self) -> dict:
        """JSON-ready copy of the filters that were set, for the operation log."""
        return {
            key: value.isoformat() if isinstance(value, datetime) else value
            for key, value in vars(self).items()
            if value is not None
        }


@router.get("", dependencies=[Depends(require_permission(PermissionCode.LOG_VIEW))])
async def list_operation_logs(
    pagination: PaginationParams = Depends(),
    filters: LogFilters = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """Administrative mutations, newest first."""
    items, total = await OperationLogService(db).list_logs(
        offset=pagination.offset,
        limit=pagination.per_page,
        **filters.as_dict(),
    )
    return paginated(dump_many(OperationLogResponse, items), total, pagination)


@router.get("/export")
async def export_operation_logs(
    request: Request,
    filters: LogFilters = Depends(),
    principal: Principal = Depends(require_permission(PermissionCode.LOG_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    """Download the filtered log as CSV."""
    service = OperationLogService(db)
    rows = await service.export_rows(**filters.as_dict())

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "Time", "User", "Module", "Operation", "Method", "URL", "IP", "Status", "Error",
    ])
    for r in rows:
        writer.writerow([
            r.created_at.isoformat() if r.created_at else "",
            r.username or "",
            r.module,
            r.operation,
            r.method or "",
            r.request_url or "",
            r.ip_address or "",
            "success" if r.status == 1 else "failure",
            r.error_message or "",
        ])

    await service.record(
        principal, OperationModule.LOG, OperationAction.EXPORT,
        request=request, params={**filters.as_params(), "rows": len(rows)},
    )
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="operation_logs_{_timestamp()}.csv"'
        },
    )
