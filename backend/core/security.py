"""
Security utilities for the price administration backend.

Includes:
- Password hashing with bcrypt
- JWT token generation and verification
- FastAPI dependency resolving the bearer token of a request
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials as HTTPAuthCredentials
from passlib.context import CryptContext
from pydantic import BaseModel
import jwt

from app.config import get_settings
from core.exceptions import UnauthorizedError

# Initialize security settings
settings = get_settings()

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# JWT configuration
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
REFRESH_TOKEN_EXPIRE_DAYS = settings.REFRESH_TOKEN_EXPIRE_DAYS

# Missing headers are reported by the gate as 401, not by HTTPBearer as 403
security_scheme = HTTPBearer(auto_error=False)

logger = logging.getLogger(__name__)


class TokenPayload(BaseModel):
    """JWT token payload structure."""
    sub: str  # user_id
    username: str
    org_id: Optional[str] = None
    exp: datetime
    iat: datetime
    type: str  # "access" or "refresh"


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hash.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password to verify against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def _encode(user_id: str, username: str, org_id: Optional[str], token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "username": username,
        "org_id": org_id,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(user_id: str, username: str, org_id: Optional[str] = None) -> str:
    """
    Create a JWT access token.

    The token identifies the user only. Roles and permissions are never
    embedded; they are loaded fresh on every protected request.

    Args:
        user_id: User ID
        username: Login name
        org_id: Organization ID the user belongs to, if any

    Returns:
        Encoded JWT token
    """
    return _encode(user_id, username, org_id, "access", timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(user_id: str, username: str, org_id: Optional[str] = None) -> str:
    """Create a JWT refresh token."""
    return _encode(user_id, username, org_id, "refresh", timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))


def decode_access_token(token: str) -> dict:
    """
    Decode a JWT token and return the raw payload dict.

    Raises:
        jwt.InvalidTokenError: If token is invalid or expired
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])


def verify_token(token: str) -> TokenPayload:
    """
    Verify and decode a JWT token.

    Args:
        token: Encoded JWT token

    Returns:
        Decoded token payload

    Raises:
        UnauthorizedError: If token is invalid, expired or incomplete
    """
    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        raise UnauthorizedError("Please log in")
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected invalid token: %s", exc)
        raise UnauthorizedError("Please log in")

    user_id = payload.get("sub")
    username = payload.get("username")
    if user_id is None or username is None:
        raise UnauthorizedError("Please log in")

    return TokenPayload(
        sub=user_id,
        username=username,
        org_id=payload.get("org_id"),
        exp=datetime.fromtimestamp(payload.get("exp"), tz=timezone.utc),
        iat=datetime.fromtimestamp(payload.get("iat"), tz=timezone.utc),
        type=payload.get("type", "access"),
    )


async def get_current_token(
    credentials: Optional[HTTPAuthCredentials] = Depends(security_scheme),
) -> Optional[TokenPayload]:
    """
    FastAPI dependency returning the verified access token, or None when absent.

    A missing header yields None so the authorization gate can report it as
    unauthenticated; a present but invalid token is rejected here.

    Raises:
        UnauthorizedError: If the token is invalid, expired or not an access token
    """
    if not credentials:
        return None

    token_payload = verify_token(credentials.credentials)
    if token_payload.type != "access":
        raise UnauthorizedError("Please log in")

    return token_payload
