"""Role-Based Access Control (RBAC) enforcement.

Provides dependency-injection helpers for FastAPI routes to enforce
permission checks at the endpoint level. Each helper feeds the request's
freshly loaded principal through :func:`core.gate.authorize` and turns a
denial into ``UnauthorizedError`` / ``ForbiddenError`` carrying only the
uniform client message.

Usage:
    @router.get("/roles", dependencies=[Depends(require_permission(PermissionCode.ROLE_VIEW))])
    async def list_roles(...): ...

    @router.get("/services")
    async def list_services(
        principal: Principal = Depends(
            require_any_permission(PermissionCode.SERVICE_VIEW, PermissionCode.PRICE_VIEW)
        ),
    ): ...

Permission codes are validated against the registry when the dependency is
declared, so a typo fails at import time instead of silently denying.
"""

import logging
from typing import Hashable, Optional

from fastapi import Depends

from app.dependencies import get_current_principal
from core.access import Principal
from core.gate import authorize
from core.hierarchy import OrganizationHierarchy
from core.permissions import validate_codes

logger = logging.getLogger(__name__)


async def get_principal(
    principal: Optional[Principal] = Depends(get_current_principal),
) -> Principal:
    """FastAPI dependency that only requires an authenticated principal."""
    return authorize(principal).raise_for_denial()


def require_permission(permission):
    """FastAPI dependency that enforces a single permission.

    Returns 401 without a principal and 403 without the permission.
    """
    codes = validate_codes([permission])

    async def _check(
        principal: Optional[Principal] = Depends(get_current_principal),
    ) -> Principal:
        return authorize(principal, codes).raise_for_denial()

    return _check


def require_any_permission(*permissions):
    """FastAPI dependency that enforces at least one of the given permissions."""
    codes = validate_codes(permissions)
    if not codes:
        raise ValueError("require_any_permission needs at least one code")

    async def _check(
        principal: Optional[Principal] = Depends(get_current_principal),
    ) -> Principal:
        return authorize(principal, codes).raise_for_denial()

    return _check


def require_all_permissions(*permissions):
    """FastAPI dependency that enforces all of the given permissions."""
    codes = validate_codes(permissions)
    if not codes:
        raise ValueError("require_all_permissions needs at least one code")

    async def _check(
        principal: Optional[Principal] = Depends(get_current_principal),
    ) -> Principal:
        return authorize(principal, codes, require_all=True).raise_for_denial()

    return _check


def ensure_org_scope(
    principal: Principal,
    org_id: Hashable,
    hierarchy: OrganizationHierarchy,
) -> Principal:
    """Raise ForbiddenError unless ``org_id`` lies in the principal's subtree.

    Called from route bodies after the permission dependency has passed and
    before any service method that reads or writes the organization's data.
    """
    return authorize(principal, target_org_id=org_id, hierarchy=hierarchy).raise_for_denial()
