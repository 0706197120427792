"""Role management endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams, dump, dump_many, paginated, success
from api.schemas.role import RoleCreate, RolePermissionsUpdate, RoleResponse, RoleUpdate
from app.dependencies import get_db
from core.access import Principal
from core.constants import DefaultRole, OperationAction, OperationModule
from core.exceptions import ForbiddenError
from core.permissions import PermissionCode
from core.gate import authorize
from core.rbac import require_permission
from db.models.role import Role
from services.operation_log_service import OperationLogService
from services.role_service import RoleService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["roles"])


def _ensure_role_editable(principal: Principal, role: Role, data: Optional[dict] = None) -> None:
    """Keep the super-administrator override out of non-admin hands.

    Non-admins may not edit the admin role at all, and may not switch a
    system role on or off. ``data=None`` means a permission-set change.
    """
    if principal.is_admin:
        return
    if role.slug == DefaultRole.ADMIN.value or (
        role.is_system_role and data is not None and "is_active" in data
    ):
        logger.warning("User %s refused edit of system role %s", principal.username, role.slug)
        raise ForbiddenError()


@router.get("")
async def list_roles(
    pagination: PaginationParams = Depends(),
    keyword: Optional[str] = Query(default=None),
    principal: Principal = Depends(require_permission(PermissionCode.ROLE_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    """List roles with their permission codes."""
    roles, total = await RoleService(db).list_roles(
        offset=pagination.offset, limit=pagination.per_page, keyword=keyword
    )
    return paginated(dump_many(RoleResponse, roles), total, pagination)


@router.get("/{role_id}")
async def get_role(
    role_id: str,
    principal: Principal = Depends(require_permission(PermissionCode.ROLE_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    role = await RoleService(db).get_or_404(role_id)
    return success(dump(RoleResponse, role))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_role(
    body: RoleCreate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.ROLE_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """Create a role. Attaching permissions at creation also needs ``permission:assign``."""
    if body.permission_codes:
        authorize(principal, PermissionCode.PERMISSION_ASSIGN).raise_for_denial()

    role = await RoleService(db).create_role(
        name=body.name,
        slug=body.slug,
        description=body.description,
        permission_codes=body.permission_codes,
    )
    await OperationLogService(db).record(
        principal, OperationModule.ROLE, OperationAction.CREATE,
        request=request, params=body.model_dump(),
    )
    return success(dump(RoleResponse, role))


@router.put("/{role_id}")
async def update_role(
    role_id: str,
    body: RoleUpdate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.ROLE_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    service = RoleService(db)
    role = await service.get_or_404(role_id)
    data = body.model_dump(exclude_unset=True)
    _ensure_role_editable(principal, role, data)
    role = await service.update_role(role, data)
    await OperationLogService(db).record(
        principal, OperationModule.ROLE, OperationAction.UPDATE,
        request=request, params={"id": role_id, **body.model_dump(exclude_unset=True)},
    )
    return success(dump(RoleResponse, role))


@router.put("/{role_id}/permissions")
async def set_role_permissions(
    role_id: str,
    body: RolePermissionsUpdate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.PERMISSION_ASSIGN)),
    db: AsyncSession = Depends(get_db),
):
    """Replace a role's permission set. Holders see the change on their next request."""
    service = RoleService(db)
    role = await service.get_or_404(role_id)
    _ensure_role_editable(principal, role)
    role = await service.set_permissions(role, body.permission_codes)
    await OperationLogService(db).record(
        principal, OperationModule.ROLE, OperationAction.ASSIGN_PERMISSIONS,
        request=request, params={"id": role_id, "permission_codes": body.permission_codes},
    )
    return success(dump(RoleResponse, role))


@router.delete("/{role_id}")
async def delete_role(
    role_id: str,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.ROLE_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    """Delete a role. System roles and roles still assigned are refused with 409."""
    service = RoleService(db)
    role = await service.get_or_404(role_id)
    await service.delete_role(role)
    await OperationLogService(db).record(
        principal, OperationModule.ROLE, OperationAction.DELETE,
        request=request, params={"id": role_id},
    )
    return success(message="Role deleted")
