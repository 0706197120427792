"""Operation log: one row per administrative mutation."""

from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel


class OperationLog(BaseModel):
    """Records who changed what through the admin API.

    Attributes:
        user_id: Acting user
        module: Affected area (``core.constants.OperationModule``)
        operation: Action performed (``core.constants.OperationAction``)
        method: HTTP method of the request
        request_url: Request path
        request_params: Payload summary (never contains passwords)
        ip_address: Client address
        status: 1 success, 0 failure
        error_message: Failure detail
    """

    __tablename__ = "operation_logs"

    user_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    module: Mapped[str] = mapped_column(String(50), nullable=False)
    operation: Mapped[str] = mapped_column(String(50), nullable=False)
    method: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    request_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    request_params: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    status: Mapped[int] = mapped_column(default=1)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_oplog_user_created", "user_id", "created_at"),
        Index("idx_oplog_module", "module"),
    )
