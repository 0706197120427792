"""Database models for the price administration backend.

This module imports all models to ensure they are registered
with SQLAlchemy's declarative base.
"""

from db.models.organization import Organization
from db.models.user import User
from db.models.role import Role, user_roles
from db.models.permission import Permission, role_permissions
from db.models.catalog import ServiceType, Service
from db.models.price import Price
from db.models.operation_log import OperationLog
from db.models.announcement import Announcement
from db.models.configuration import Configuration

__all__ = [
    "Organization",
    "User",
    "Role",
    "user_roles",
    "Permission",
    "role_permissions",
    "ServiceType",
    "Service",
    "Price",
    "OperationLog",
    "Announcement",
    "Configuration",
]
