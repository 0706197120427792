"""Loads the request principal fresh from the database."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.access import Principal
from db.models.role import Role
from db.models.user import User

logger = logging.getLogger(__name__)


async def load_user_with_permissions(db: AsyncSession, user_id: str) -> Optional[User]:
    """Load user -> roles -> permissions in one round of queries.

    ``populate_existing`` overwrites anything already in the session's
    identity map, so role changes made earlier in the same session are seen.
    """
    result = await db.execute(
        select(User)
        .where(User.id == user_id, User.is_deleted == False)
        .options(selectinload(User.roles).selectinload(Role.permissions))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def load_principal(db: AsyncSession, user_id: str) -> Optional[Principal]:
    """Build the principal for ``user_id``, or None if the account cannot act.

    Deleted and deactivated accounts resolve to None, which the gate
    reports as unauthenticated.
    """
    user = await load_user_with_permissions(db, user_id)
    if user is None:
        logger.info("Principal lookup failed: user=%s not found", user_id)
        return None
    if not user.is_active:
        logger.info("Principal lookup failed: user=%s is deactivated", user_id)
        return None
    return Principal.from_user(user)
