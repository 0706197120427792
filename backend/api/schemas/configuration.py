"""Configuration schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ConfigurationCreate(BaseModel):
    config_key: str = Field(min_length=1, max_length=100, pattern=r"^[A-Z][A-Z0-9_]*$")
    config_value: str = Field(default="", max_length=5000)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: bool = True


class ConfigurationUpdate(BaseModel):
    config_value: Optional[str] = Field(default=None, max_length=5000)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class ConfigurationResponse(BaseModel):
    id: str
    config_key: str
    config_value: str
    description: Optional[str] = None
    is_active: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
