"""Runtime configuration stored as key/value rows."""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel


class Configuration(BaseModel):
    """One configuration entry, e.g. ``COMPANY_NAME`` or ``DEFAULT_CURRENCY``.

    Keys are unique among live rows; the prefix decides whether an entry
    is a system or a business setting.
    """

    __tablename__ = "configurations"

    config_key: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    config_value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)
