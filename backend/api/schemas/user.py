"""User management schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.\-]+$")
    password: str = Field(min_length=6, max_length=128)
    email: Optional[str] = Field(default=None, max_length=100)
    real_name: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)
    organization_id: Optional[str] = None
    role_ids: List[str] = []
    is_active: bool = True


class UserUpdate(BaseModel):
    email: Optional[str] = Field(default=None, max_length=100)
    real_name: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)
    organization_id: Optional[str] = None
    is_active: Optional[bool] = None


class UserRolesUpdate(BaseModel):
    role_ids: List[str] = Field(description="Complete new role set")


class PasswordUpdate(BaseModel):
    password: str = Field(min_length=6, max_length=128)


class RoleSummary(BaseModel):
    id: str
    name: str
    slug: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: str
    username: str
    email: Optional[str] = None
    real_name: Optional[str] = None
    phone: Optional[str] = None
    organization_id: Optional[str] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    roles: List[RoleSummary] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("roles", mode="before")
    @classmethod
    def live_roles(cls, value):
        return [r for r in value or [] if not getattr(r, "is_deleted", False)]
