"""Permission model and role_permissions association table."""

from sqlalchemy import ForeignKey, String, Table, Column
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, BaseModel

# Association table for many-to-many relationship between Role and Permission
role_permissions = Table(
    "role_permissions",
    Base.metadata,
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "permission_id", ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True
    ),
)


class Permission(BaseModel):
    """Persisted copy of a permission registry entry.

    Rows are upserted from ``core.permissions`` at startup; administrators
    only attach them to roles.

    Attributes:
        id: Unique identifier (UUID string)
        code: Registry code, e.g. ``price:view``
        name: Display name
        description: Permission description
        module: Registry grouping, e.g. ``price``
        is_active: Disabled permissions are ignored when flattening roles
    """

    __tablename__ = "permissions"

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(nullable=False, default="")
    module: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(default=True)
