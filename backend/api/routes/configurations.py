"""Configuration endpoints (``config:view`` to read, ``config:edit`` for everything else)."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams, dump, dump_many, paginated, success
from api.schemas.configuration import (
    ConfigurationCreate,
    ConfigurationResponse,
    ConfigurationUpdate,
)
from app.dependencies import get_db
from core.access import Principal
from core.constants import ConfigurationType, OperationAction, OperationModule
from core.permissions import PermissionCode
from core.rbac import require_permission
from services.configuration_service import ConfigurationService
from services.operation_log_service import OperationLogService

router = APIRouter(tags=["configurations"])


@router.get("", dependencies=[Depends(require_permission(PermissionCode.CONFIG_VIEW))])
async def list_configurations(
    pagination: PaginationParams = Depends(),
    type: Optional[ConfigurationType] = Query(default=None, description="system or business"),
    keyword: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    items, total = await ConfigurationService(db).list_configurations(
        config_type=type,
        keyword=keyword,
        offset=pagination.offset,
        limit=pagination.per_page,
    )
    return paginated(dump_many(ConfigurationResponse, items), total, pagination)


@router.post("/refresh")
async def refresh_configurations(
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.CONFIG_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    """Reload active entries into the in-process snapshot."""
    snapshot = await ConfigurationService(db).refresh()
    await OperationLogService(db).record(
        principal, OperationModule.CONFIGURATION, OperationAction.REFRESH,
        request=request, params={"entries": len(snapshot)},
    )
    return success({"entries": len(snapshot)}, message="Configuration refreshed")


@router.get("/{config_id}", dependencies=[Depends(require_permission(PermissionCode.CONFIG_VIEW))])
async def get_configuration(config_id: str, db: AsyncSession = Depends(get_db)):
    return success(dump(ConfigurationResponse, await ConfigurationService(db).get_or_404(config_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_configuration(
    body: ConfigurationCreate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.CONFIG_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    config = await ConfigurationService(db).create_configuration(body.model_dump())
    await OperationLogService(db).record(
        principal, OperationModule.CONFIGURATION, OperationAction.CREATE,
        request=request, params=body.model_dump(),
    )
    return success(dump(ConfigurationResponse, config))


@router.put("/{config_id}")
async def update_configuration(
    config_id: str,
    body: ConfigurationUpdate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.CONFIG_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    service = ConfigurationService(db)
    config = await service.get_or_404(config_id)
    data = body.model_dump(exclude_unset=True)
    config = await service.update_configuration(config, data)
    await OperationLogService(db).record(
        principal, OperationModule.CONFIGURATION, OperationAction.UPDATE,
        request=request, params={"id": config_id, "config_key": config.config_key, **data},
    )
    return success(dump(ConfigurationResponse, config))


@router.delete("/{config_id}")
async def delete_configuration(
    config_id: str,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.CONFIG_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    service = ConfigurationService(db)
    config = await service.get_or_404(config_id)
    await service.delete_configuration(config)
    await OperationLogService(db).record(
        principal, OperationModule.CONFIGURATION, OperationAction.DELETE,
        request=request, params={"id": config_id, "config_key": config.config_key},
    )
    return success(message="Configuration deleted")
