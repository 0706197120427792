"""Permission registry.

The closed catalog of permission codes the backend understands. Routes,
menu descriptors and role assignments reference codes from here; anything
outside the catalog is treated as "not granted" by the evaluator and is
rejected outright when declared on a route.

Codes follow the ``<module>:<action>`` convention, e.g. ``price:view``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from core.exceptions import UnknownPermissionError

# Reserved marker placed in a principal's effective permission set when the
# principal holds the admin role. It satisfies every registered code.
ADMIN_MARKER = "admin"


class PermissionCode(str, Enum):
    """Every permission code known to the system."""

    USER_VIEW = "user:view"
    USER_CREATE = "user:create"
    USER_EDIT = "user:edit"
    USER_DELETE = "user:delete"

    ROLE_VIEW = "role:view"
    ROLE_CREATE = "role:create"
    ROLE_EDIT = "role:edit"
    ROLE_DELETE = "role:delete"
    PERMISSION_ASSIGN = "permission:assign"

    ORG_VIEW = "org:view"
    ORG_CREATE = "org:create"
    ORG_EDIT = "org:edit"
    ORG_DELETE = "org:delete"

    SERVICE_TYPE_VIEW = "service-type:view"
    SERVICE_TYPE_CREATE = "service-type:create"
    SERVICE_TYPE_EDIT = "service-type:edit"
    SERVICE_TYPE_DELETE = "service-type:delete"
    SERVICE_VIEW = "service:view"
    SERVICE_CREATE = "service:create"
    SERVICE_EDIT = "service:edit"
    SERVICE_DELETE = "service:delete"

    PRICE_VIEW = "price:view"
    PRICE_CREATE = "price:create"
    PRICE_EDIT = "price:edit"
    PRICE_DELETE = "price:delete"
    PRICE_IMPORT = "price:import"
    PRICE_EXPORT = "price:export"

    CONFIG_VIEW = "config:view"
    CONFIG_EDIT = "config:edit"
    LOG_VIEW = "log:view"

    ANNOUNCEMENT_VIEW = "announcement:view"
    ANNOUNCEMENT_CREATE = "announcement:create"
    ANNOUNCEMENT_EDIT = "announcement:edit"
    ANNOUNCEMENT_DELETE = "announcement:delete"

    DATA_ANALYSIS = "data:analysis"


@dataclass(frozen=True)
class PermissionDefinition:
    """Catalog entry for one permission code."""

    code: str
    name: str
    description: str
    module: str


def _define(code: PermissionCode, name: str, description: str, module: str) -> PermissionDefinition:
    return PermissionDefinition(code=code.value, name=name, description=description, module=module)


_DEFINITIONS = [
    # User management
    _define(PermissionCode.USER_VIEW, "View users", "View user accounts", "user"),
    _define(PermissionCode.USER_CREATE, "Create users", "Create new user accounts", "user"),
    _define(PermissionCode.USER_EDIT, "Edit users", "Edit user accounts and role assignments", "user"),
    _define(PermissionCode.USER_DELETE, "Delete users", "Delete user accounts", "user"),
    # Roles and permissions
    _define(PermissionCode.ROLE_VIEW, "View roles", "View roles and the permission catalog", "role"),
    _define(PermissionCode.ROLE_CREATE, "Create roles", "Create new roles", "role"),
    _define(PermissionCode.ROLE_EDIT, "Edit roles", "Edit role details", "role"),
    _define(PermissionCode.ROLE_DELETE, "Delete roles", "Delete roles", "role"),
    _define(PermissionCode.PERMISSION_ASSIGN, "Assign permissions", "Assign permissions to roles", "role"),
    # Organizations
    _define(PermissionCode.ORG_VIEW, "View organizations", "View the organization hierarchy", "organization"),
    _define(PermissionCode.ORG_CREATE, "Create organizations", "Create organizations", "organization"),
    _define(PermissionCode.ORG_EDIT, "Edit organizations", "Edit and re-parent organizations", "organization"),
    _define(PermissionCode.ORG_DELETE, "Delete organizations", "Delete organizations", "organization"),
    # Service catalog
    _define(PermissionCode.SERVICE_TYPE_VIEW, "View service types", "View service types", "service"),
    _define(PermissionCode.SERVICE_TYPE_CREATE, "Create service types", "Create service types", "service"),
    _define(PermissionCode.SERVICE_TYPE_EDIT, "Edit service types", "Edit service types", "service"),
    _define(PermissionCode.SERVICE_TYPE_DELETE, "Delete service types", "Delete service types", "service"),
    _define(PermissionCode.SERVICE_VIEW, "View services", "View services", "service"),
    _define(PermissionCode.SERVICE_CREATE, "Create services", "Create services", "service"),
    _define(PermissionCode.SERVICE_EDIT, "Edit services", "Edit services", "service"),
    _define(PermissionCode.SERVICE_DELETE, "Delete services", "Delete services", "service"),
    # Prices
    _define(PermissionCode.PRICE_VIEW, "View prices", "View price records", "price"),
    _define(PermissionCode.PRICE_CREATE, "Create prices", "Create price records", "price"),
    _define(PermissionCode.PRICE_EDIT, "Edit prices", "Edit price records", "price"),
    _define(PermissionCode.PRICE_DELETE, "Delete prices", "Delete price records", "price"),
    _define(PermissionCode.PRICE_IMPORT, "Import prices", "Bulk import price records", "price"),
    _define(PermissionCode.PRICE_EXPORT, "Export prices", "Export price records", "price"),
    # System
    _define(PermissionCode.CONFIG_VIEW, "View configuration", "View system configuration", "system"),
    _define(PermissionCode.CONFIG_EDIT, "Edit configuration", "Edit system configuration", "system"),
    _define(PermissionCode.LOG_VIEW, "View logs", "View operation logs", "system"),
    # Announcements
    _define(PermissionCode.ANNOUNCEMENT_VIEW, "View announcements", "View announcements", "announcement"),
    _define(PermissionCode.ANNOUNCEMENT_CREATE, "Create announcements", "Create announcements", "announcement"),
    _define(PermissionCode.ANNOUNCEMENT_EDIT, "Edit announcements", "Edit announcements", "announcement"),
    _define(PermissionCode.ANNOUNCEMENT_DELETE, "Delete announcements", "Delete announcements", "announcement"),
    # Reporting
    _define(PermissionCode.DATA_ANALYSIS, "Data analysis", "Access reports and price analysis", "report"),
]

PERMISSIONS: dict[str, PermissionDefinition] = {p.code: p for p in _DEFINITIONS}


def _code_value(code) -> str:
    return code.value if isinstance(code, PermissionCode) else code


def get_permission(code) -> Optional[PermissionDefinition]:
    """Look up a catalog entry. Unknown codes return None, never raise."""
    if not isinstance(code, (str, PermissionCode)):
        return None
    return PERMISSIONS.get(_code_value(code))


def is_registered(code) -> bool:
    """True if ``code`` is part of the catalog."""
    return get_permission(code) is not None


def list_permissions(module: Optional[str] = None) -> list[PermissionDefinition]:
    """List catalog entries in declaration order, optionally for one module."""
    return [p for p in _DEFINITIONS if module is None or p.module == module]


def permissions_by_module() -> dict[str, list[PermissionDefinition]]:
    """Group catalog entries by module, preserving declaration order."""
    grouped: dict[str, list[PermissionDefinition]] = {}
    for definition in _DEFINITIONS:
        grouped.setdefault(definition.module, []).append(definition)
    return grouped


def validate_codes(codes: Iterable) -> tuple[str, ...]:
    """Normalize codes to strings and reject anything outside the catalog.

    Raises:
        UnknownPermissionError: If any code is not registered
    """
    normalized = tuple(_code_value(c) for c in codes)
    unknown = [c for c in normalized if not is_registered(c)]
    if unknown:
        raise UnknownPermissionError(unknown)
    return normalized


def check_registry_integrity() -> None:
    """Startup check: codes are unique, well formed and do not shadow the admin marker."""
    if ADMIN_MARKER in PERMISSIONS:
        raise RuntimeError(f"Permission code collides with the reserved marker '{ADMIN_MARKER}'")
    if len(PERMISSIONS) != len(_DEFINITIONS):
        raise RuntimeError("Duplicate permission codes in the registry")
    enum_values = {c.value for c in PermissionCode}
    if enum_values != set(PERMISSIONS):
        missing = sorted(enum_values ^ set(PERMISSIONS))
        raise RuntimeError(f"Permission enum and catalog disagree: {missing}")
    for code in PERMISSIONS:
        module, _, action = code.partition(":")
        if not module or not action:
            raise RuntimeError(f"Malformed permission code: {code}")
