"""Organization schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    parent_id: Optional[str] = Field(default=None, description="Parent organization; omit for a root")
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True


class OrganizationUpdate(BaseModel):
    """Partial update. Sending ``parent_id: null`` explicitly makes the organization a root."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    parent_id: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class OrganizationResponse(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    level: int
    is_active: bool
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
