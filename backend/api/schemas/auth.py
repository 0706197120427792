"""Authentication schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """User login request."""

    username: str = Field(min_length=1, max_length=50, description="Login name")
    password: str = Field(min_length=1, description="User password")


class RefreshRequest(BaseModel):
    """Token refresh request."""

    refresh_token: str = Field(description="Refresh token to exchange for a new token pair")


class TokenResponse(BaseModel):
    """Token response with access and refresh tokens."""

    access_token: str = Field(description="JWT access token")
    refresh_token: str = Field(description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")


class PrincipalResponse(BaseModel):
    """The caller as seen by the authorization layer."""

    id: str
    username: str
    organization_id: Optional[str] = None
    roles: List[str] = Field(default=[], description="Role slugs")
    permissions: List[str] = Field(default=[], description="Effective permission codes")
    is_admin: bool = False


class ProfileResponse(PrincipalResponse):
    """Profile returned by /auth/me."""

    email: Optional[str] = None
    real_name: Optional[str] = None
    organization_name: Optional[str] = None
    last_login_at: Optional[datetime] = None
