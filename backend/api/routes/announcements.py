"""Announcement endpoints.

The dashboard feed and single announcements are readable by every signed-in
user; the management listing and all writes need the ``announcement:*`` codes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.announcement import (
    AnnouncementCreate,
    AnnouncementResponse,
    AnnouncementUpdate,
)
from api.schemas.common import PaginationParams, dump, dump_many, paginated, success
from app.dependencies import get_db
from core.access import Principal
from core.constants import OperationAction, OperationModule
from core.gate import authorize
from core.permissions import PermissionCode
from core.rbac import get_principal, require_permission
from services.announcement_service import AnnouncementService
from services.operation_log_service import OperationLogService

router = APIRouter(tags=["announcements"])


@router.get("")
async def list_announcements(
    pagination: PaginationParams = Depends(),
    dashboard: bool = Query(default=False, description="Only what the dashboard shows right now"),
    keyword: Optional[str] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Dashboard feed for everyone, or the full paginated list for announcement viewers."""
    service = AnnouncementService(db)
    if dashboard:
        return success(dump_many(AnnouncementResponse, await service.published()))

    authorize(principal, PermissionCode.ANNOUNCEMENT_VIEW).raise_for_denial()
    items, total = await service.list_announcements(
        offset=pagination.offset,
        limit=pagination.per_page,
        keyword=keyword,
        is_active=is_active,
    )
    return paginated(dump_many(AnnouncementResponse, items), total, pagination)


@router.get("/{announcement_id}")
async def get_announcement(
    announcement_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService(db).get_or_404(announcement_id)
    return success(dump(AnnouncementResponse, announcement))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_announcement(
    body: AnnouncementCreate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.ANNOUNCEMENT_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService(db).create_announcement(body.model_dump(), principal.id)
    await OperationLogService(db).record(
        principal, OperationModule.ANNOUNCEMENT, OperationAction.CREATE,
        request=request, params=body.model_dump(mode="json"),
    )
    return success(dump(AnnouncementResponse, announcement))


@router.put("/{announcement_id}")
async def update_announcement(
    announcement_id: str,
    body: AnnouncementUpdate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.ANNOUNCEMENT_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    service = AnnouncementService(db)
    announcement = await service.get_or_404(announcement_id)
    data = body.model_dump(exclude_unset=True)
    announcement = await service.update_announcement(announcement, data)
    await OperationLogService(db).record(
        principal, OperationModule.ANNOUNCEMENT, OperationAction.UPDATE,
        request=request, params={"id": announcement_id, **body.model_dump(mode="json", exclude_unset=True)},
    )
    return success(dump(AnnouncementResponse, announcement))


@router.delete("/{announcement_id}")
async def delete_announcement(
    announcement_id: str,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.ANNOUNCEMENT_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    service = AnnouncementService(db)
    await service.delete_announcement(await service.get_or_404(announcement_id))
    await OperationLogService(db).record(
        principal, OperationModule.ANNOUNCEMENT, OperationAction.DELETE,
        request=request, params={"id": announcement_id},
    )
    return success(message="Announcement deleted")
