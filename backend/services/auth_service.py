"""Authentication service: login and token refresh."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.access import Principal
from core.exceptions import UnauthorizedError
from core.security import (
    create_access_token,
    create_refresh_token,
    verify_password,
    verify_token,
)
from db.models.user import User
from services.access_service import load_principal

logger = logging.getLogger(__name__)


def _issue_tokens(user_id: str, username: str, org_id: Optional[str]) -> dict:
    return {
        "access_token": create_access_token(user_id=user_id, username=username, org_id=org_id),
        "refresh_token": create_refresh_token(user_id=user_id, username=username, org_id=org_id),
        "token_type": "bearer",
    }


class AuthService:
    """Handles authentication and token operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def login(self, username: str, password: str) -> Optional[dict]:
        """Authenticate a user and return tokens.

        Args:
            username: Login name
            password: Plain text password

        Returns:
            Dict with access_token, refresh_token and the user's principal
            or None if authentication fails
        """
        result = await self.db.execute(
            select(User).where(
                User.username == username,
                User.is_deleted == False,
                User.is_active == True,
            )
        )
        user = result.scalar_one_or_none()

        if not user or not verify_password(password, user.password_hash):
            logger.info("Login failed for username=%s", username)
            return None

        user.last_login_at = datetime.now(timezone.utc)
        await self.db.flush()

        principal = await load_principal(self.db, user.id)
        logger.info("Login succeeded: user=%s", user.id)
        return {
            **_issue_tokens(user.id, user.username, user.organization_id),
            "principal": principal,
        }

    async def refresh(self, refresh_token: str) -> dict:
        """Exchange a refresh token for a new token pair.

        The account is re-checked, so deactivated users cannot refresh.

        Raises:
            UnauthorizedError: If the token is invalid or the account cannot act
        """
        payload = verify_token(refresh_token)
        if payload.type != "refresh":
            raise UnauthorizedError()

        principal: Optional[Principal] = await load_principal(self.db, payload.sub)
        if principal is None:
            raise UnauthorizedError()
        return _issue_tokens(principal.id, principal.username, principal.organization_id)
