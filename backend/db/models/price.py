"""Price record owned by an organization."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel


class Price(BaseModel):
    """A quoted price for one service, owned by one organization.

    Reads and writes are scoped: a caller only sees prices whose
    ``organization_id`` lies inside their own organization subtree.
    """

    __tablename__ = "prices"

    organization_id: Mapped[str] = mapped_column(
        ForeignKey("organizations.id", ondelete="RESTRICT"), nullable=False
    )
    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.id", ondelete="RESTRICT"), nullable=False
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="CNY")
    effective_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    remark: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("idx_price_org_service", "organization_id", "service_id"),
        Index("idx_price_effective", "effective_date"),
    )
