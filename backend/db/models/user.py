"""User model for the price administration backend."""

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import BaseModel


class User(BaseModel):
    """Staff account; the persisted side of a request principal.

    Attributes:
        id: Unique identifier (UUID string)
        username: Login name (unique, stays reserved after soft delete)
        email: Contact email
        password_hash: Bcrypt hashed password
        real_name: Display name
        phone: Contact phone
        organization_id: Organization the user belongs to (scopes what they see)
        is_active: Whether the account may log in
        last_login_at: Timestamp of last login
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    password_hash: Mapped[str] = mapped_column(nullable=False)
    real_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    organization_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(default=True, index=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    # Relationships
    organization: Mapped[Optional["Organization"]] = relationship(
        "Organization", lazy="selectin"
    )
    roles: Mapped[list["Role"]] = relationship(
        "Role",
        secondary="user_roles",
        lazy="selectin",
    )
