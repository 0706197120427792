"""Tests for the RBAC route dependencies."""

import pytest

from core.access import Principal
from core.exceptions import ForbiddenError, UnauthorizedError, UnknownPermissionError
from core.hierarchy import build_hierarchy
from core.permissions import ADMIN_MARKER, PermissionCode
from core.rbac import (
    ensure_org_scope,
    get_principal,
    require_all_permissions,
    require_any_permission,
    require_permission,
)


def principal(*codes, org=None):
    return Principal(id="u1", username="tester", permissions=frozenset(codes), organization_id=org)


@pytest.mark.unit
class TestDeclaration:
    """Typos in route declarations fail immediately."""

    def test_unknown_code_fails_at_declaration(self):
        with pytest.raises(UnknownPermissionError):
            require_permission("price:veiw")

    def test_unknown_code_among_many(self):
        with pytest.raises(UnknownPermissionError):
            require_any_permission(PermissionCode.PRICE_VIEW, "prices:view")
        with pytest.raises(UnknownPermissionError):
            require_all_permissions("org:view", "org:bogus")

    def test_empty_code_lists_are_rejected(self):
        with pytest.raises(ValueError):
            require_any_permission()
        with pytest.raises(ValueError):
            require_all_permissions()


@pytest.mark.unit
class TestDependencies:
    """The returned callables behave as FastAPI dependencies."""

    async def test_require_permission(self):
        check = require_permission(PermissionCode.USER_VIEW)
        p = principal("user:view")
        assert await check(principal=p) is p
        with pytest.raises(ForbiddenError):
            await check(principal=principal("org:view"))
        with pytest.raises(UnauthorizedError):
            await check(principal=None)

    async def test_require_any_permission(self):
        check = require_any_permission("role:view", "permission:assign")
        assert await check(principal=principal("permission:assign"))
        with pytest.raises(ForbiddenError):
            await check(principal=principal("user:view"))

    async def test_require_all_permissions(self):
        check = require_all_permissions("user:edit", "role:view")
        assert await check(principal=principal("user:edit", "role:view"))
        with pytest.raises(ForbiddenError):
            await check(principal=principal("user:edit"))

    async def test_admin_passes_everything(self):
        admin = principal(ADMIN_MARKER)
        assert await require_all_permissions("config:edit", "log:view")(principal=admin) is admin

    async def test_get_principal(self):
        p = principal()
        assert await get_principal(principal=p) is p
        with pytest.raises(UnauthorizedError):
            await get_principal(principal=None)


@pytest.mark.unit
class TestEnsureOrgScope:

    def test_inside_and_outside(self):
        hierarchy = build_hierarchy([
            {"id": "head", "parent_id": None},
            {"id": "north", "parent_id": "head"},
            {"id": "harbor", "parent_id": "north"},
        ])
        p = principal(org="north")
        assert ensure_org_scope(p, "harbor", hierarchy) is p
        with pytest.raises(ForbiddenError):
            ensure_org_scope(p, "head", hierarchy)
        assert ensure_org_scope(principal(ADMIN_MARKER), "head", hierarchy)
