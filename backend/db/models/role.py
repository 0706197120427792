"""Role model and user_roles association table."""

from sqlalchemy import ForeignKey, String, Table, Column
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import Base, BaseModel

# Association table for many-to-many relationship between User and Role
user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(BaseModel):
    """A named bundle of permission codes assignable to users.

    Attributes:
        id: Unique identifier (UUID string)
        name: Display name (unique among live roles)
        slug: Stable identifier; the ``admin`` slug grants the override marker
        description: Role description
        is_active: Disabled roles contribute no permissions
        is_system_role: Seeded role that cannot be deleted
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[str] = mapped_column(nullable=False, default="")
    is_active: Mapped[bool] = mapped_column(default=True)
    is_system_role: Mapped[bool] = mapped_column(default=False)

    # Relationships
    permissions: Mapped[list["Permission"]] = relationship(
        "Permission",
        secondary="role_permissions",
        lazy="selectin",
    )
