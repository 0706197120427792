"""Role service: CRUD and permission assignment."""

import logging
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError, NotFoundError
from core.permissions import validate_codes
from core.utils import generate_slug
from db.models.permission import Permission
from db.models.role import Role, user_roles
from db.models.user import User
from services.base import BaseService

logger = logging.getLogger(__name__)


class RoleService(BaseService[Role]):
    """Service for roles and their permission sets."""

    def __init__(self, db: AsyncSession):
        super().__init__(Role, db)

    async def list_roles(self, offset: int = 0, limit: int = 50, keyword: Optional[str] = None):
        """Roles ordered by name, optionally filtered by a name fragment."""
        query = select(Role).where(Role.is_deleted == False)
        count_query = select(func.count()).select_from(Role).where(Role.is_deleted == False)
        if keyword:
            query = query.where(Role.name.contains(keyword))
            count_query = count_query.where(Role.name.contains(keyword))
        result = await self.db.execute(query.order_by(Role.name).offset(offset).limit(limit))
        total = (await self.db.execute(count_query)).scalar() or 0
        return result.scalars().all(), total

    async def get_or_404(self, role_id: str) -> Role:
        role = await self.get_by_id(role_id)
        if not role:
            raise NotFoundError("Role not found")
        return role

    async def get_by_slug(self, slug: str) -> Optional[Role]:
        return await self.find_by(slug=slug)

    async def _permissions_for(self, codes: Iterable) -> list[Permission]:
        """Resolve registry codes to permission rows.

        Raises:
            UnknownPermissionError: If a code is not in the registry
            ValueError: If a registered code has no row (seed not run)
        """
        codes = validate_codes(codes)
        if not codes:
            return []
        result = await self.db.execute(
            select(Permission).where(Permission.code.in_(codes), Permission.is_deleted == False)
        )
        rows = result.scalars().all()
        missing = set(codes) - {p.code for p in rows}
        if missing:
            raise ValueError(f"Permissions not provisioned: {', '.join(sorted(missing))}")
        return list(rows)

    async def create_role(
        self,
        name: str,
        description: str = "",
        permission_codes: Iterable = (),
        slug: Optional[str] = None,
        is_system_role: bool = False,
    ) -> Role:
        """Create a role with an initial permission set.

        Raises:
            ConflictError: If the name or slug is taken
        """
        if await self.find_by(name=name):
            raise ConflictError("Role name already exists")
        slug = slug or generate_slug(name) or name.lower()
        if await self.find_by(slug=slug):
            raise ConflictError("Role identifier already exists")

        permissions = await self._permissions_for(permission_codes)
        role = Role(
            name=name,
            slug=slug,
            description=description or "",
            is_system_role=is_system_role,
        )
        role.permissions = permissions
        self.db.add(role)
        await self.db.flush()
        await self.db.refresh(role)
        logger.info("Role created: id=%s slug=%s permissions=%d", role.id, role.slug, len(permissions))
        return role

    async def update_role(self, role: Role, data: dict) -> Role:
        """Update name, description or status.

        Raises:
            ConflictError: If the new name is taken
        """
        name = data.get("name")
        if name is not None and name != role.name:
            if await self.find_by(exclude_id=role.id, name=name):
                raise ConflictError("Role name already exists")
        return await self.apply_update(role, data)

    async def set_permissions(self, role: Role, permission_codes: Iterable) -> Role:
        """Replace the role's permission set."""
        role.permissions = await self._permissions_for(permission_codes)
        await self.db.flush()
        await self.db.refresh(role)
        logger.info("Role permissions replaced: id=%s count=%d", role.id, len(role.permissions))
        return role

    async def count_assignments(self, role_id: str) -> int:
        """Live users holding the role."""
        result = await self.db.execute(
            select(func.count())
            .select_from(user_roles.join(User, User.id == user_roles.c.user_id))
            .where(user_roles.c.role_id == role_id, User.is_deleted == False)
        )
        return result.scalar() or 0

    async def delete_role(self, role: Role) -> None:
        """Soft-delete a role.

        Raises:
            ConflictError: If it is a system role or still assigned to users
        """
        if role.is_system_role:
            raise ConflictError("System roles cannot be deleted")
        if await self.count_assignments(role.id):
            raise ConflictError("Role is still assigned to users")
        role.soft_delete()
        await self.db.flush()
        logger.info("Role deleted: id=%s slug=%s", role.id, role.slug)

    async def get_many(self, role_ids: Iterable[str]) -> Sequence[Role]:
        """Load roles by id.

        Raises:
            NotFoundError: If any id does not name a live role
        """
        role_ids = list(dict.fromkeys(role_ids))
        if not role_ids:
            return []
        result = await self.db.execute(
            select(Role).where(Role.id.in_(role_ids), Role.is_deleted == False)
        )
        roles = result.scalars().all()
        if len(roles) != len(role_ids):
            raise NotFoundError("Role not found")
        return roles
