"""Role and permission schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from core.permissions import validate_codes


class PermissionResponse(BaseModel):
    code: str
    name: str
    description: str = ""
    module: str

    class Config:
        from_attributes = True


class _PermissionCodes(BaseModel):
    @field_validator("permission_codes", check_fields=False)
    @classmethod
    def codes_must_be_registered(cls, value):
        if value is None:
            return value
        return list(validate_codes(value))


class RoleCreate(_PermissionCodes):
    name: str = Field(min_length=1, max_length=50)
    slug: Optional[str] = Field(default=None, max_length=50, pattern=r"^[a-z0-9\-]+$")
    description: str = Field(default="", max_length=500)
    permission_codes: List[str] = Field(default=[])


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class RolePermissionsUpdate(_PermissionCodes):
    permission_codes: List[str] = Field(description="Complete new permission set")


class RoleResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str = ""
    is_active: bool
    is_system_role: bool
    permissions: List[str] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("permissions", mode="before")
    @classmethod
    def permission_codes(cls, value):
        return [getattr(p, "code", p) for p in value or [] if not getattr(p, "is_deleted", False)]
