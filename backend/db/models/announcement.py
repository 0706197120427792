"""Announcements shown on the dashboard."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel


class Announcement(BaseModel):
    """A notice published to every signed-in user.

    Attributes:
        title: Headline
        content: Body text
        publish_time: Not shown on the dashboard before this moment
        expire_time: Not shown after this moment; None never expires
        is_active: Drafts and withdrawn notices are inactive
        created_by: Author
    """

    __tablename__ = "announcements"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    publish_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expire_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_by: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        Index("idx_announcement_publish", "is_active", "publish_time"),
    )
