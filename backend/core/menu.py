"""Dashboard navigation descriptor and permission-based menu filtering.

The menu is a static, declarative tree supplied by the presentation layer.
This module only prunes it for a principal; it never invents entries.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Union

from core.access import Principal, has_any_permission
from core.permissions import PermissionCode, validate_codes

RequiredPermission = Optional[Union[str, PermissionCode, tuple]]


@dataclass(frozen=True)
class MenuItem:
    """One navigation entry.

    ``required_permission`` is a single code, a tuple of codes (any of them
    grants access) or None for entries visible to every authenticated user.
    """

    key: str
    label: str
    path: Optional[str] = None
    required_permission: RequiredPermission = None
    children: tuple = field(default_factory=tuple)

    def required_codes(self) -> tuple[str, ...]:
        if self.required_permission is None:
            return ()
        if isinstance(self.required_permission, (str, PermissionCode)):
            return validate_codes([self.required_permission])
        return validate_codes(self.required_permission)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "path": self.path,
            "children": [child.to_dict() for child in self.children],
        }


def _requirement_passes(principal: Principal, item: MenuItem) -> bool:
    codes = item.required_codes()
    if not codes:
        return True
    return has_any_permission(principal, codes)


def _filter_item(principal: Principal, item: MenuItem) -> Optional[MenuItem]:
    if not item.children:
        return item if _requirement_passes(principal, item) else None
    children = tuple(
        kept for kept in (_filter_item(principal, child) for child in item.children) if kept is not None
    )
    # Containers exist only to group gated children
    if not children:
        return None
    return replace(item, children=children)


def visible_menu_sections(principal: Principal, menu: tuple) -> tuple:
    """Prune ``menu`` down to the entries ``principal`` may navigate to.

    A leaf is kept when it has no requirement or its requirement passes. A
    node with children is kept iff at least one child survives; a container
    whose children are all pruned disappears even when its own requirement
    passes. Input order is preserved.
    """
    return tuple(
        kept for kept in (_filter_item(principal, item) for item in menu) if kept is not None
    )


P = PermissionCode

DASHBOARD_MENU: tuple = (
    MenuItem("dashboard", "Dashboard", "/dashboard"),
    MenuItem(
        "price",
        "Price Management",
        children=(
            MenuItem("price-list", "Price List", "/dashboard/prices", P.PRICE_VIEW),
            MenuItem("price-create", "Add Price", "/dashboard/prices/create", P.PRICE_CREATE),
        ),
    ),
    MenuItem(
        "user",
        "User Management",
        children=(
            MenuItem("user-list", "Users", "/dashboard/users", P.USER_VIEW),
            MenuItem("role-manage", "Roles", "/dashboard/roles", P.ROLE_VIEW),
            MenuItem("org-manage", "Organizations", "/dashboard/organizations", P.ORG_VIEW),
        ),
    ),
    MenuItem(
        "service",
        "Service Management",
        required_permission=(P.SERVICE_TYPE_VIEW, P.SERVICE_VIEW),
        children=(
            MenuItem("service-types", "Service Types", "/dashboard/services/types", P.SERVICE_TYPE_VIEW),
            MenuItem("services", "Services", "/dashboard/services", P.SERVICE_VIEW),
        ),
    ),
    MenuItem(
        "system",
        "System",
        children=(
            MenuItem("system-settings", "Settings", "/dashboard/settings", P.CONFIG_VIEW),
            MenuItem("system-announcements", "Announcements", "/dashboard/settings/announcements", P.ANNOUNCEMENT_VIEW),
            MenuItem("system-log", "Operation Logs", "/dashboard/logs", P.LOG_VIEW),
        ),
    ),
)
