"""Service catalog models: service types and the services under them."""

from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db.base import BaseModel


class ServiceType(BaseModel):
    """Top-level grouping of logistics services (e.g. express, freight)."""

    __tablename__ = "service_types"

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)


class Service(BaseModel):
    """A concrete service that prices are quoted for."""

    __tablename__ = "services"

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    service_type_id: Mapped[str] = mapped_column(
        ForeignKey("service_types.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)

    # Relationships
    service_type: Mapped["ServiceType"] = relationship("ServiceType", lazy="selectin")
