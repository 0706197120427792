"""Tests for the permission registry."""

import pytest

from core.exceptions import UnknownPermissionError
from core.permissions import (
    ADMIN_MARKER,
    PERMISSIONS,
    PermissionCode,
    check_registry_integrity,
    get_permission,
    is_registered,
    list_permissions,
    permissions_by_module,
    validate_codes,
)


@pytest.mark.unit
class TestRegistryLookup:
    """Lookups never raise for unknown input."""

    def test_known_code(self):
        definition = get_permission("price:view")
        assert definition is not None
        assert definition.module == "price"
        assert get_permission(PermissionCode.PRICE_VIEW) is definition

    def test_unknown_code_returns_none(self):
        assert get_permission("price:fly") is None
        assert get_permission("") is None
        assert get_permission(None) is None
        assert get_permission(42) is None
        assert is_registered("nope") is False

    def test_admin_marker_is_not_a_permission(self):
        assert is_registered(ADMIN_MARKER) is False

    def test_every_enum_member_is_registered(self):
        for code in PermissionCode:
            assert is_registered(code), code

    def test_codes_follow_module_action_convention(self):
        for code in PERMISSIONS:
            module, sep, action = code.partition(":")
            assert sep == ":" and module and action


@pytest.mark.unit
class TestListing:

    def test_list_all_in_declaration_order(self):
        codes = [p.code for p in list_permissions()]
        assert codes[0] == "user:view"
        assert codes[-1] == "data:analysis"
        assert len(codes) == len(PermissionCode)

    def test_list_by_module(self):
        price = list_permissions("price")
        assert {p.code for p in price} == {
            "price:view", "price:create", "price:edit",
            "price:delete", "price:import", "price:export",
        }
        assert list_permissions("no-such-module") == []

    def test_grouped_by_module(self):
        grouped = permissions_by_module()
        assert "organization" in grouped
        assert [p.code for p in grouped["organization"]] == [
            "org:view", "org:create", "org:edit", "org:delete",
        ]
        assert sum(len(v) for v in grouped.values()) == len(PERMISSIONS)


@pytest.mark.unit
class TestValidateCodes:

    def test_normalizes_enum_members(self):
        assert validate_codes([PermissionCode.ORG_VIEW, "user:edit"]) == ("org:view", "user:edit")

    def test_empty_is_valid(self):
        assert validate_codes([]) == ()

    def test_unknown_codes_are_reported(self):
        with pytest.raises(UnknownPermissionError) as exc_info:
            validate_codes(["org:view", "org:veiw", "bogus"])
        assert exc_info.value.codes == ("org:veiw", "bogus")
        assert "org:veiw" in str(exc_info.value)

    def test_unknown_permission_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_codes(["x:y"])

    def test_integrity_check_passes(self):
        check_registry_integrity()
