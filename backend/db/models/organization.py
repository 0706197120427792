"""Organization model: the self-referential company hierarchy."""

from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel


class Organization(BaseModel):
    """A node of the organization forest.

    Attributes:
        id: Unique identifier (UUID string)
        name: Organization name (unique among live organizations)
        parent_id: Parent organization, None for roots
        level: Depth indicator kept as parent level + 1 on write; informational,
            the hierarchy builder recomputes depth from the parent chain
        is_active: Enabled/disabled status
        description: Free text
        created_at: Creation timestamp
        updated_at: Last update timestamp

    There is no ORM ``children`` relationship on purpose: trees are built
    from a flat snapshot by ``core.hierarchy.build_hierarchy``.
    """

    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    parent_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("organizations.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    level: Mapped[int] = mapped_column(nullable=False, default=1)
    is_active: Mapped[bool] = mapped_column(default=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name!r}, parent_id={self.parent_id})>"
