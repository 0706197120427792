"""Tests for the access control evaluator."""

from types import SimpleNamespace

import pytest

from core.access import (
    Principal,
    can_access_organization_scope,
    has_all_permissions,
    has_any_permission,
    has_permission,
    scoped_organization_ids,
)
from core.hierarchy import build_hierarchy
from core.permissions import ADMIN_MARKER, PermissionCode


def principal(*codes, org=None, roles=()):
    return Principal(
        id="u1",
        username="tester",
        roles=frozenset(roles),
        permissions=frozenset(getattr(c, "value", c) for c in codes),
        organization_id=org,
    )


ADMIN = principal(ADMIN_MARKER, org="head", roles=("admin",))


@pytest.fixture
def hierarchy():
    return build_hierarchy([
        {"id": "head", "parent_id": None},
        {"id": "north", "parent_id": "head"},
        {"id": "harbor", "parent_id": "north"},
        {"id": "south", "parent_id": "head"},
    ])


@pytest.mark.unit
class TestHasPermission:

    def test_granted_code(self):
        p = principal("price:view")
        assert has_permission(p, "price:view") is True
        assert has_permission(p, PermissionCode.PRICE_VIEW) is True

    def test_missing_code(self):
        assert has_permission(principal("price:view"), "price:edit") is False

    def test_no_principal(self):
        assert has_permission(None, "price:view") is False
        assert has_any_permission(None, ["price:view"]) is False
        assert has_all_permissions(None, ["price:view"]) is False

    def test_admin_holds_every_registered_code(self):
        for code in PermissionCode:
            assert has_permission(ADMIN, code) is True

    def test_unknown_code_is_never_granted(self):
        # Even a principal whose set literally contains the string
        odd = principal("made:up")
        assert has_permission(odd, "made:up") is False
        assert has_permission(ADMIN, "made:up") is False
        assert has_permission(ADMIN, "") is False

    def test_any_and_all(self):
        p = principal("user:view", "org:view")
        assert has_any_permission(p, ["price:view", "org:view"]) is True
        assert has_any_permission(p, ["price:view", "price:edit"]) is False
        assert has_any_permission(p, []) is False
        assert has_all_permissions(p, ["user:view", "org:view"]) is True
        assert has_all_permissions(p, ["user:view", "price:view"]) is False
        assert has_all_permissions(p, []) is True


@pytest.mark.unit
class TestOrganizationScope:

    def test_admin_sees_everything(self, hierarchy):
        for org_id in ("head", "north", "harbor", "south", "unknown"):
            assert can_access_organization_scope(ADMIN, org_id, hierarchy) is True
        assert scoped_organization_ids(ADMIN, hierarchy) is None

    def test_own_subtree_only(self, hierarchy):
        p = principal("org:view", org="north")
        assert can_access_organization_scope(p, "north", hierarchy) is True
        assert can_access_organization_scope(p, "harbor", hierarchy) is True
        assert can_access_organization_scope(p, "head", hierarchy) is False
        assert can_access_organization_scope(p, "south", hierarchy) is False
        assert scoped_organization_ids(p, hierarchy) == frozenset({"north", "harbor"})

    def test_scope_matches_descendants(self, hierarchy):
        for org_id in ("head", "north", "harbor", "south"):
            p = principal(org=org_id)
            expected = {org_id, *hierarchy.descendants_of(org_id)}
            for target in ("head", "north", "harbor", "south"):
                assert can_access_organization_scope(p, target, hierarchy) == (target in expected)

    def test_no_organization_sees_nothing(self, hierarchy):
        p = principal("org:view")
        assert can_access_organization_scope(p, "head", hierarchy) is False
        assert scoped_organization_ids(p, hierarchy) == frozenset()

    def test_unknown_own_organization_sees_nothing(self, hierarchy):
        p = principal("org:view", org="gone")
        assert scoped_organization_ids(p, hierarchy) == frozenset()
        assert can_access_organization_scope(p, "head", hierarchy) is False

    def test_no_principal(self, hierarchy):
        assert can_access_organization_scope(None, "head", hierarchy) is False
        assert scoped_organization_ids(None, hierarchy) == frozenset()


def _perm(code, active=True, deleted=False):
    return SimpleNamespace(code=code, is_active=active, is_deleted=deleted)


def _role(slug, permissions, active=True, deleted=False):
    return SimpleNamespace(slug=slug, permissions=permissions, is_active=active, is_deleted=deleted)


@pytest.mark.unit
class TestPrincipalFromUser:

    def test_union_of_role_permissions(self):
        user = SimpleNamespace(
            id="u1", username="clerk", organization_id="north",
            roles=[
                _role("internal", [_perm("price:view"), _perm("org:view")]),
                _role("auditor", [_perm("log:view"), _perm("price:view")]),
            ],
        )
        p = Principal.from_user(user)
        assert p.permissions == frozenset({"price:view", "org:view", "log:view"})
        assert p.roles == frozenset({"internal", "auditor"})
        assert p.organization_id == "north"
        assert p.is_admin is False

    def test_inactive_and_deleted_entries_contribute_nothing(self):
        user = SimpleNamespace(
            id="u1", username="clerk", organization_id=None,
            roles=[
                _role("internal", [_perm("price:view"), _perm("price:edit", active=False)]),
                _role("disabled", [_perm("user:view")], active=False),
                _role("removed", [_perm("role:view")], deleted=True),
            ],
        )
        p = Principal.from_user(user)
        assert p.permissions == frozenset({"price:view"})
        assert p.roles == frozenset({"internal"})

    def test_admin_role_adds_marker(self):
        user = SimpleNamespace(
            id="u1", username="boss", organization_id="head",
            roles=[_role("admin", [])],
        )
        p = Principal.from_user(user)
        assert p.is_admin is True
        assert ADMIN_MARKER in p.permissions

    def test_no_roles(self):
        user = SimpleNamespace(id="u1", username="nobody", organization_id=None, roles=[])
        assert Principal.from_user(user).permissions == frozenset()


@pytest.mark.unit
class TestEmptyPrincipal:

    def test_empty_permission_set_grants_nothing(self):
        empty = principal()
        for code in PermissionCode:
            assert has_permission(empty, code) is False

    def test_middle_of_chain_scope(self):
        chain = build_hierarchy([
            {"id": 1, "parent_id": None},
            {"id": 2, "parent_id": 1},
            {"id": 3, "parent_id": 2},
        ])
        p = principal("org:view", org=2)
        assert can_access_organization_scope(p, 3, chain) is True
        assert can_access_organization_scope(p, 1, chain) is False
