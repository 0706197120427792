"""FastAPI dependency injection functions."""

import logging
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.access import Principal
from core.logging_config import bind_request_context
from core.security import TokenPayload, get_current_token
import db.database as database

logger = logging.getLogger(__name__)


async def get_db() -> AsyncSession:
    """
    Provide a database session for API endpoints.

    Yields an async SQLAlchemy session that is automatically
    committed on success or rolled back on error.
    """
    async with database.AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Database error: {str(e)}")
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_current_principal(
    token: Optional[TokenPayload] = Depends(get_current_token),
    db: AsyncSession = Depends(get_db),
) -> Optional[Principal]:
    """
    Resolve the request's principal with its current roles and permissions.

    Nothing is taken from the token beyond the user id: roles and
    permissions are read from the database on every request, so revoking
    a role takes effect immediately.

    Returns:
        The principal, or None when there is no token or the account is
        missing, deleted or deactivated
    """
    if token is None:
        return None

    from services.access_service import load_principal

    principal = await load_principal(db, token.sub)
    if principal is not None:
        bind_request_context(user=principal.username, user_id=principal.id)
    return principal
