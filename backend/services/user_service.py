"""User service: CRUD, role assignment and password management."""

import logging
from typing import Iterable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, NotFoundError
from core.security import hash_password
from db.models.user import User
from services.base import BaseService
from services.role_service import RoleService

logger = logging.getLogger(__name__)


class UserService(BaseService[User]):
    """Service for staff accounts."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def get_by_username(self, username: str, include_deleted: bool = False) -> Optional[User]:
        query = select(User).where(User.username == username)
        if not include_deleted:
            query = query.where(User.is_deleted == False)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_or_404(self, user_id: str) -> User:
        user = await self.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def list_users(
        self,
        organization_ids: Optional[Iterable[str]] = None,
        offset: int = 0,
        limit: int = 50,
        keyword: Optional[str] = None,
        organization_id: Optional[str] = None,
        is_active: Optional[bool] = None,
    ):
        """List users, restricted to ``organization_ids`` unless it is None.

        Returns:
            Tuple of (items, total_count)
        """
        conditions = [User.is_deleted == False]
        if organization_ids is not None:
            conditions.append(User.organization_id.in_(list(organization_ids)))
        if organization_id:
            conditions.append(User.organization_id == organization_id)
        if is_active is not None:
            conditions.append(User.is_active == is_active)
        if keyword:
            conditions.append(
                or_(User.username.contains(keyword), User.real_name.contains(keyword))
            )

        result = await self.db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc(), User.id)
            .offset(offset)
            .limit(limit)
        )
        total = (
            await self.db.execute(select(func.count()).select_from(User).where(*conditions))
        ).scalar() or 0
        return result.scalars().all(), total

    async def create_user(
        self,
        username: str,
        password: str,
        email: Optional[str] = None,
        real_name: Optional[str] = None,
        phone: Optional[str] = None,
        organization_id: Optional[str] = None,
        role_ids: Iterable[str] = (),
        is_active: bool = True,
    ) -> User:
        """Create a user with hashed password and initial roles.

        Usernames of deleted accounts stay reserved.

        Raises:
            ConflictError: If the username is taken
            NotFoundError: If a role id is unknown
        """
        if await self.get_by_username(username, include_deleted=True):
            raise ConflictError("Username already exists")

        roles = await RoleService(self.db).get_many(role_ids)
        user = User(
            username=username,
            password_hash=hash_password(password),
            email=email,
            real_name=real_name,
            phone=phone,
            organization_id=organization_id,
            is_active=is_active,
        )
        user.roles = list(roles)
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        logger.info("User created: id=%s username=%s org=%s", user.id, user.username, organization_id)
        return user

    async def update_profile(self, user: User, data: dict) -> User:
        """Update safe profile fields only.

        ``organization_id`` is applied even when None, detaching the user.
        """
        allowed_fields = {"email", "real_name", "phone", "is_active"}
        safe_data = {k: v for k, v in data.items() if k in allowed_fields}
        if "organization_id" in data:
            user.organization_id = data["organization_id"]
        return await self.apply_update(user, safe_data)

    async def set_roles(self, user: User, role_ids: Iterable[str]) -> User:
        """Replace the user's roles; takes effect on their next request."""
        user.roles = list(await RoleService(self.db).get_many(role_ids))
        await self.db.flush()
        await self.db.refresh(user)
        logger.info(
            "User roles replaced: id=%s roles=%s", user.id, [r.slug for r in user.roles]
        )
        return user

    async def set_password(self, user: User, password: str) -> None:
        user.password_hash = hash_password(password)
        await self.db.flush()
        logger.info("Password reset: user=%s", user.id)

    async def delete_user(self, user: User) -> None:
        user.soft_delete()
        await self.db.flush()
        logger.info("User deleted: id=%s username=%s", user.id, user.username)
