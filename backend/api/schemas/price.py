"""Price and operation log schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class PriceCreate(BaseModel):
    organization_id: str
    service_id: str
    amount: float = Field(ge=0)
    currency: str = Field(default="CNY", min_length=3, max_length=3)
    effective_date: Optional[datetime] = None
    remark: Optional[str] = Field(default=None, max_length=500)


class PriceUpdate(BaseModel):
    organization_id: Optional[str] = None
    service_id: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    effective_date: Optional[datetime] = None
    remark: Optional[str] = Field(default=None, max_length=500)


class PriceResponse(BaseModel):
    id: str
    organization_id: str
    service_id: str
    amount: float
    currency: str
    effective_date: Optional[datetime] = None
    remark: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OperationLogResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    module: str
    operation: str
    method: Optional[str] = None
    request_url: Optional[str] = None
    request_params: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    status: int
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
