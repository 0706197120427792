"""Organization service: CRUD over the organization hierarchy.

Every read that needs tree shape or scope decisions goes through
:meth:`OrganizationService.load_hierarchy`, which snapshots the live rows
and hands them to :func:`core.hierarchy.build_hierarchy`. Writes keep the
parent relation acyclic and ``level`` equal to parent level + 1.
"""

import logging
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from core.exceptions import BadRequestError, ConflictError, NotFoundError
from core.hierarchy import OrganizationHierarchy, OrganizationRecord, build_hierarchy
from db.models.organization import Organization
from db.models.user import User
from services.base import BaseService

logger = logging.getLogger(__name__)

_UNSET = object()


class OrganizationService(BaseService[Organization]):
    """Service for the self-referential organization table."""

    def __init__(self, db: AsyncSession):
        super().__init__(Organization, db)

    # ─── Read ──────────────────────────────────────────────

    async def list_all(self) -> Sequence[Organization]:
        """All live organizations, shallowest first, then by creation."""
        result = await self.db.execute(
            select(Organization)
            .where(Organization.is_deleted == False)
            .order_by(Organization.level, Organization.created_at, Organization.name)
        )
        return result.scalars().all()

    async def load_hierarchy(self) -> OrganizationHierarchy:
        """Snapshot the live organizations into an immutable hierarchy."""
        rows = await self.list_all()
        return build_hierarchy(OrganizationRecord.from_object(row) for row in rows)

    async def get_or_404(self, org_id: str) -> Organization:
        org = await self.get_by_id(org_id)
        if not org:
            raise NotFoundError("Organization not found")
        return org

    async def count_users(self, org_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(User).where(
                User.organization_id == org_id,
                User.is_deleted == False,
            )
        )
        return result.scalar() or 0

    async def count_children(self, org_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Organization).where(
                Organization.parent_id == org_id,
                Organization.is_deleted == False,
            )
        )
        return result.scalar() or 0

    # ─── Write ─────────────────────────────────────────────

    async def _ensure_unique_name(self, name: str, exclude_id: Optional[str] = None) -> None:
        if await self.find_by(exclude_id=exclude_id, name=name):
            raise ConflictError("Organization name already exists")

    async def _resolve_parent(self, parent_id: Optional[str]) -> Optional[Organization]:
        if parent_id is None:
            return None
        parent = await self.get_by_id(parent_id)
        if not parent:
            raise BadRequestError("Parent organization does not exist")
        return parent

    async def create_organization(
        self,
        name: str,
        parent_id: Optional[str] = None,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> Organization:
        """Create an organization under ``parent_id`` (or as a new root).

        Raises:
            ConflictError: If the name is taken
            BadRequestError: If the parent does not exist
        """
        await self._ensure_unique_name(name)
        parent = await self._resolve_parent(parent_id)
        org = await self.create(
            {
                "name": name,
                "parent_id": parent.id if parent else None,
                "level": parent.level + 1 if parent else 1,
                "description": description,
                "is_active": is_active,
            }
        )
        logger.info("Organization created: id=%s name=%s parent=%s", org.id, org.name, org.parent_id)
        return org

    async def update_organization(
        self,
        org: Organization,
        data: dict[str, Any],
        parent_id: Any = _UNSET,
    ) -> Organization:
        """Update fields and, when ``parent_id`` is passed, move the organization.

        ``parent_id=None`` turns the organization into a root. Moving under
        itself or under one of its own descendants is refused. After a move,
        ``level`` is rewritten for the organization and its whole subtree.

        Raises:
            ConflictError: If the new name is taken
            BadRequestError: If the new parent is missing or would create a cycle
        """
        name = data.get("name")
        if name is not None and name != org.name:
            await self._ensure_unique_name(name, exclude_id=org.id)

        moved = False
        if parent_id is not _UNSET and parent_id != org.parent_id:
            if parent_id == org.id:
                raise BadRequestError("An organization cannot be its own parent")
            parent = await self._resolve_parent(parent_id)
            hierarchy = await self.load_hierarchy()
            if hierarchy.would_create_cycle(org.id, parent_id):
                logger.warning(
                    "Refused move of org=%s under descendant org=%s", org.id, parent_id
                )
                raise BadRequestError("An organization cannot be moved under its own descendant")
            org.parent_id = parent.id if parent else None
            org.level = parent.level + 1 if parent else 1
            moved = True

        org = await self.apply_update(org, data)
        if moved:
            await self._relevel_subtree(org)
        return org

    async def _relevel_subtree(self, org: Organization) -> None:
        """Rewrite ``level`` of every descendant from the fresh parent chain."""
        hierarchy = await self.load_hierarchy()
        descendants = hierarchy.descendants_of(org.id)
        if not descendants:
            return
        result = await self.db.execute(
            select(Organization).where(Organization.id.in_(descendants))
        )
        for row in result.scalars().all():
            depth = hierarchy.depth_of(row.id)
            if depth is not None and row.level != depth:
                row.level = depth
        await self.db.flush()

    async def delete_organization(self, org: Organization) -> None:
        """Soft-delete ``org``.

        Raises:
            ConflictError: If it is the root organization or still has live
                child organizations or users
        """
        settings = get_settings()
        if org.parent_id is None and org.name == settings.ROOT_ORGANIZATION_NAME:
            raise ConflictError("The root organization cannot be deleted")
        if await self.count_children(org.id):
            raise ConflictError("Organization still has child organizations")
        if await self.count_users(org.id):
            raise ConflictError("Organization still has users")

        org.soft_delete()
        await self.db.flush()
        logger.info("Organization deleted: id=%s name=%s", org.id, org.name)
