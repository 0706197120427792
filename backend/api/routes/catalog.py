"""Service catalog endpoints: service types and services."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.catalog import (
    ServiceCreate,
    ServiceResponse,
    ServiceTypeCreate,
    ServiceTypeResponse,
    ServiceTypeUpdate,
    ServiceUpdate,
)
from api.schemas.common import PaginationParams, dump, dump_many, paginated, success
from app.dependencies import get_db
from core.access import Principal
from core.constants import OperationAction, OperationModule
from core.permissions import PermissionCode
from core.rbac import require_permission
from services.catalog_service import ServiceService, ServiceTypeService
from services.operation_log_service import OperationLogService

service_types_router = APIRouter(tags=["service-types"])
services_router = APIRouter(tags=["services"])


# ─── Service types ──────────────────────────────────────────────────────────

@service_types_router.get("")
async def list_service_types(
    pagination: PaginationParams = Depends(),
    principal: Principal = Depends(require_permission(PermissionCode.SERVICE_TYPE_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await ServiceTypeService(db).list(
        offset=pagination.offset, limit=pagination.per_page, order_by="name", order_desc=False
    )
    return paginated(dump_many(ServiceTypeResponse, items), total, pagination)


@service_types_router.get("/{type_id}")
async def get_service_type(
    type_id: str,
    principal: Principal = Depends(require_permission(PermissionCode.SERVICE_TYPE_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    return success(dump(ServiceTypeResponse, await ServiceTypeService(db).get_or_404(type_id)))


@service_types_router.post("", status_code=status.HTTP_201_CREATED)
async def create_service_type(
    body: ServiceTypeCreate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.SERVICE_TYPE_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    service_type = await ServiceTypeService(db).create_type(body.model_dump())
    await OperationLogService(db).record(
        principal, OperationModule.SERVICE_TYPE, OperationAction.CREATE,
        request=request, params=body.model_dump(),
    )
    return success(dump(ServiceTypeResponse, service_type))


@service_types_router.put("/{type_id}")
async def update_service_type(
    type_id: str,
    body: ServiceTypeUpdate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.SERVICE_TYPE_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    service = ServiceTypeService(db)
    service_type = await service.get_or_404(type_id)
    data = body.model_dump(exclude_unset=True)
    service_type = await service.update_type(service_type, data)
    await OperationLogService(db).record(
        principal, OperationModule.SERVICE_TYPE, OperationAction.UPDATE,
        request=request, params={"id": type_id, **data},
    )
    return success(dump(ServiceTypeResponse, service_type))


@service_types_router.delete("/{type_id}")
async def delete_service_type(
    type_id: str,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.SERVICE_TYPE_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    """Refused with 409 while services still use the type."""
    service = ServiceTypeService(db)
    await service.delete_type(await service.get_or_404(type_id))
    await OperationLogService(db).record(
        principal, OperationModule.SERVICE_TYPE, OperationAction.DELETE,
        request=request, params={"id": type_id},
    )
    return success(message="Service type deleted")


# ─── Services ───────────────────────────────────────────────────────────────

@services_router.get("")
async def list_services(
    pagination: PaginationParams = Depends(),
    service_type_id: Optional[str] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    principal: Principal = Depends(require_permission(PermissionCode.SERVICE_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await ServiceService(db).list_services(
        offset=pagination.offset,
        limit=pagination.per_page,
        service_type_id=service_type_id,
        is_active=is_active,
    )
    return paginated(dump_many(ServiceResponse, items), total, pagination)


@services_router.get("/{service_id}")
async def get_service(
    service_id: str,
    principal: Principal = Depends(require_permission(PermissionCode.SERVICE_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    return success(dump(ServiceResponse, await ServiceService(db).get_or_404(service_id)))


@services_router.post("", status_code=status.HTTP_201_CREATED)
async def create_service(
    body: ServiceCreate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.SERVICE_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    service = await ServiceService(db).create_service(body.model_dump())
    await OperationLogService(db).record(
        principal, OperationModule.SERVICE, OperationAction.CREATE,
        request=request, params=body.model_dump(),
    )
    return success(dump(ServiceResponse, service))


@services_router.put("/{service_id}")
async def update_service(
    service_id: str,
    body: ServiceUpdate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.SERVICE_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    services = ServiceService(db)
    service = await services.get_or_404(service_id)
    data = body.model_dump(exclude_unset=True)
    service = await services.update_service(service, data)
    await OperationLogService(db).record(
        principal, OperationModule.SERVICE, OperationAction.UPDATE,
        request=request, params={"id": service_id, **data},
    )
    return success(dump(ServiceResponse, service))


@services_router.delete("/{service_id}")
async def delete_service(
    service_id: str,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.SERVICE_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    """Refused with 409 while prices still reference the service."""
    services = ServiceService(db)
    await services.delete_service(await services.get_or_404(service_id))
    await OperationLogService(db).record(
        principal, OperationModule.SERVICE, OperationAction.DELETE,
        request=request, params={"id": service_id},
    )
    return success(message="Service deleted")
