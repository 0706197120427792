"""User management endpoints.

Non-admin callers only see and manage users inside their own organization
subtree. Only administrators may hand out the admin role or touch an
account that holds it.
"""

import logging
from typing import Iterable, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams, dump, paginated, dump_many, success
from api.schemas.user import (
    PasswordUpdate,
    UserCreate,
    UserResponse,
    UserRolesUpdate,
    UserUpdate,
)
from app.dependencies import get_db
from core.access import Principal, scoped_organization_ids
from core.constants import DefaultRole, OperationAction, OperationModule
from core.exceptions import BadRequestError, ForbiddenError, NotFoundError
from core.permissions import PermissionCode
from core.rbac import ensure_org_scope, require_all_permissions, require_permission
from db.models.user import User
from services.operation_log_service import OperationLogService
from services.organization_service import OrganizationService
from services.role_service import RoleService
from services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


def _holds_admin_role(user: User) -> bool:
    return any(r.slug == DefaultRole.ADMIN.value and not r.is_deleted for r in user.roles)


async def _load_user_in_scope(principal: Principal, user_id: str, db: AsyncSession) -> User:
    """Load a user the caller may see.

    Non-admins get 403 for ids outside their subtree whether or not the id
    exists, so the answer never tells them which accounts exist elsewhere.
    """
    user = await UserService(db).get_by_id(user_id)
    if user is None:
        if principal.is_admin:
            raise NotFoundError("User not found")
        logger.warning("User %s outside scope of %s: unknown id", user_id, principal.username)
        raise ForbiddenError()
    if principal.is_admin:
        return user
    if user.organization_id is None:
        logger.warning("User %s outside scope of %s: no organization", user.id, principal.username)
        raise ForbiddenError()
    ensure_org_scope(principal, user.organization_id, await OrganizationService(db).load_hierarchy())
    return user


def _ensure_account_manageable(principal: Principal, user: User) -> None:
    """Only administrators may edit, re-role, reset or remove an administrator."""
    if not principal.is_admin and _holds_admin_role(user):
        logger.warning("User %s tried to modify administrator %s", principal.username, user.id)
        raise ForbiddenError()


async def _ensure_target_org(
    principal: Principal,
    organization_id: Optional[str],
    service: OrganizationService,
) -> None:
    """Validate the organization a user is being placed in."""
    if organization_id is None:
        if not principal.is_admin:
            raise ForbiddenError()
        return
    hierarchy = await service.load_hierarchy()
    ensure_org_scope(principal, organization_id, hierarchy)
    if organization_id not in hierarchy:
        raise BadRequestError("Organization does not exist")


async def _ensure_roles_grantable(principal: Principal, role_ids: Iterable[str], db: AsyncSession) -> None:
    roles = await RoleService(db).get_many(role_ids)
    if not principal.is_admin and any(r.slug == DefaultRole.ADMIN.value for r in roles):
        logger.warning("User %s tried to grant the admin role", principal.username)
        raise ForbiddenError()


@router.get("")
async def list_users(
    pagination: PaginationParams = Depends(),
    keyword: Optional[str] = Query(default=None),
    organization_id: Optional[str] = Query(default=None),
    is_active: Optional[bool] = Query(default=None),
    principal: Principal = Depends(require_permission(PermissionCode.USER_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    """List users in the caller's organization subtree (everyone for admins)."""
    hierarchy = await OrganizationService(db).load_hierarchy()
    scope = scoped_organization_ids(principal, hierarchy)
    users, total = await UserService(db).list_users(
        organization_ids=scope,
        offset=pagination.offset,
        limit=pagination.per_page,
        keyword=keyword,
        organization_id=organization_id,
        is_active=is_active,
    )
    return paginated(dump_many(UserResponse, users), total, pagination)


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    principal: Principal = Depends(require_permission(PermissionCode.USER_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    user = await _load_user_in_scope(principal, user_id, db)
    return success(dump(UserResponse, user))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.USER_CREATE)),
    db: AsyncSession = Depends(get_db),
):
    """Create a user inside the caller's scope."""
    await _ensure_target_org(principal, body.organization_id, OrganizationService(db))
    if body.role_ids:
        await _ensure_roles_grantable(principal, body.role_ids, db)

    user = await UserService(db).create_user(**body.model_dump())
    await OperationLogService(db).record(
        principal, OperationModule.USER, OperationAction.CREATE,
        request=request, params=body.model_dump(),
    )
    return success(dump(UserResponse, user))


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.USER_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    user = await _load_user_in_scope(principal, user_id, db)
    _ensure_account_manageable(principal, user)

    data = body.model_dump(exclude_unset=True)
    if "organization_id" in data:
        await _ensure_target_org(principal, data["organization_id"], OrganizationService(db))

    user = await UserService(db).update_profile(user, data)
    await OperationLogService(db).record(
        principal, OperationModule.USER, OperationAction.UPDATE,
        request=request, params={"id": user_id, **data},
    )
    return success(dump(UserResponse, user))


@router.put("/{user_id}/roles")
async def set_user_roles(
    user_id: str,
    body: UserRolesUpdate,
    request: Request,
    principal: Principal = Depends(
        require_all_permissions(PermissionCode.USER_EDIT, PermissionCode.ROLE_VIEW)
    ),
    db: AsyncSession = Depends(get_db),
):
    """Replace a user's roles. The change applies from the user's next request."""
    user = await _load_user_in_scope(principal, user_id, db)
    _ensure_account_manageable(principal, user)
    await _ensure_roles_grantable(principal, body.role_ids, db)

    user = await UserService(db).set_roles(user, body.role_ids)
    await OperationLogService(db).record(
        principal, OperationModule.USER, OperationAction.ASSIGN_ROLES,
        request=request, params={"id": user_id, "role_ids": body.role_ids},
    )
    return success(dump(UserResponse, user))


@router.put("/{user_id}/password")
async def reset_password(
    user_id: str,
    body: PasswordUpdate,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.USER_EDIT)),
    db: AsyncSession = Depends(get_db),
):
    user = await _load_user_in_scope(principal, user_id, db)
    _ensure_account_manageable(principal, user)

    await UserService(db).set_password(user, body.password)
    await OperationLogService(db).record(
        principal, OperationModule.USER, OperationAction.RESET_PASSWORD,
        request=request, params={"id": user_id},
    )
    return success(message="Password updated")


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    request: Request,
    principal: Principal = Depends(require_permission(PermissionCode.USER_DELETE)),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a user. Deleting your own account is refused."""
    if user_id == principal.id:
        raise BadRequestError("You cannot delete your own account")

    user = await _load_user_in_scope(principal, user_id, db)
    _ensure_account_manageable(principal, user)

    await UserService(db).delete_user(user)
    await OperationLogService(db).record(
        principal, OperationModule.USER, OperationAction.DELETE,
        request=request, params={"id": user_id},
    )
    return success(message="User deleted")
