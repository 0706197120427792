"""Constants and enums for the price administration backend."""

from enum import Enum, IntEnum


class OperationStatus(IntEnum):
    """Outcome recorded on an operation log entry."""

    FAILURE = 0
    SUCCESS = 1


class OperationModule(str, Enum):
    """Administrative module an operation log entry belongs to."""

    USER = "user"
    ROLE = "role"
    ORGANIZATION = "organization"
    SERVICE_TYPE = "service-type"
    SERVICE = "service"
    PRICE = "price"
    ANNOUNCEMENT = "announcement"
    CONFIGURATION = "configuration"
    LOG = "log"


class OperationAction(str, Enum):
    """Operation recorded in the operation log."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ASSIGN_PERMISSIONS = "assign_permissions"
    ASSIGN_ROLES = "assign_roles"
    RESET_PASSWORD = "reset_password"
    LOGIN = "login"
    EXPORT = "export"
    REFRESH = "refresh"


class DefaultRole(str, Enum):
    """Slugs of the roles seeded on first start."""

    ADMIN = "admin"
    MANAGER = "manager"
    INTERNAL = "internal"
    EXTERNAL = "external"


class ConfigurationType(str, Enum):
    """Configuration groups, told apart by key prefix."""

    SYSTEM = "system"
    BUSINESS = "business"


CONFIGURATION_KEY_PREFIXES: dict[ConfigurationType, tuple[str, ...]] = {
    ConfigurationType.SYSTEM: ("SYSTEM_", "COMPANY_", "CONTACT_"),
    ConfigurationType.BUSINESS: ("DEFAULT_", "PRICE_", "WEIGHT_", "VOLUME_"),
}

# Rows returned by the dashboard announcement feed
DASHBOARD_ANNOUNCEMENT_LIMIT = 10

# Upper bound on rows written by one CSV export
EXPORT_ROW_LIMIT = 10000
