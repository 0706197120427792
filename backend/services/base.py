"""Base CRUD service with soft-delete aware queries.

All service classes inherit from this. Provides standard
create/read/update/delete with automatic soft-delete filtering,
pagination, and organization-set scoping for hierarchy-aware reads.
"""

from typing import Any, Generic, Iterable, Optional, Sequence, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.base import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseService(Generic[ModelType]):
    """Generic CRUD service for any SQLAlchemy model.

    Usage:
        class RoleService(BaseService[Role]):
            def __init__(self, db: AsyncSession):
                super().__init__(Role, db)
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        self.model = model
        self.db = db

    # ─── Read ──────────────────────────────────────────────

    async def get_by_id(
        self,
        id: str,
        include_deleted: bool = False,
    ) -> Optional[ModelType]:
        """Get a single record by ID."""
        query = select(self.model).where(self.model.id == id)
        if not include_deleted:
            query = query.where(self.model.is_deleted == False)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list(
        self,
        organization_ids: Optional[Iterable[str]] = None,
        offset: int = 0,
        limit: int = 50,
        order_by: str = "created_at",
        order_desc: bool = True,
        include_deleted: bool = False,
        filters: dict[str, Any] = None,
    ) -> tuple[Sequence[ModelType], int]:
        """List records with pagination, filtering, and sorting.

        Args:
            organization_ids: Restrict to rows owned by these organizations.
                None means unrestricted; an empty collection matches nothing.

        Returns:
            Tuple of (items, total_count)
        """
        query = select(self.model)
        count_query = select(func.count()).select_from(self.model)

        # Organization scope
        if organization_ids is not None and hasattr(self.model, "organization_id"):
            scope = list(organization_ids)
            query = query.where(self.model.organization_id.in_(scope))
            count_query = count_query.where(self.model.organization_id.in_(scope))

        # Soft delete filter
        if not include_deleted:
            query = query.where(self.model.is_deleted == False)
            count_query = count_query.where(self.model.is_deleted == False)

        # Additional filters
        if filters:
            for field, value in filters.items():
                if value is None or not hasattr(self.model, field):
                    continue
                col = getattr(self.model, field)
                if isinstance(value, list):
                    query = query.where(col.in_(value))
                    count_query = count_query.where(col.in_(value))
                else:
                    query = query.where(col == value)
                    count_query = count_query.where(col == value)

        # Sorting
        if hasattr(self.model, order_by):
            col = getattr(self.model, order_by)
            query = query.order_by(col.desc() if order_desc else col.asc(), self.model.id)

        # Pagination
        query = query.offset(offset).limit(limit)

        result = await self.db.execute(query)
        items = result.scalars().all()

        count_result = await self.db.execute(count_query)
        total = count_result.scalar() or 0

        return items, total

    async def exists(self, id: str) -> bool:
        """Check if a record exists (not soft-deleted)."""
        query = select(func.count()).select_from(self.model).where(
            self.model.id == id,
            self.model.is_deleted == False,
        )
        result = await self.db.execute(query)
        return (result.scalar() or 0) > 0

    async def find_by(self, exclude_id: Optional[str] = None, **criteria: Any) -> Optional[ModelType]:
        """First live record matching ``criteria`` (optionally excluding one id)."""
        query = select(self.model).where(self.model.is_deleted == False)
        for field, value in criteria.items():
            query = query.where(getattr(self.model, field) == value)
        if exclude_id is not None:
            query = query.where(self.model.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none()

    # ─── Create ────────────────────────────────────────────

    async def create(self, data: dict[str, Any]) -> ModelType:
        """Create a new record.

        Args:
            data: Dict of field values

        Returns:
            Created model instance
        """
        instance = self.model(**data)
        self.db.add(instance)
        await self.db.flush()
        await self.db.refresh(instance)
        return instance

    # ─── Update ────────────────────────────────────────────

    async def apply_update(self, instance: ModelType, data: dict[str, Any]) -> ModelType:
        """Write ``data`` onto an already loaded instance.

        Keys whose value is None are skipped; callers that must clear a
        column set it on the instance themselves.
        """
        for key, value in data.items():
            if value is not None and hasattr(instance, key):
                setattr(instance, key, value)

        await self.db.flush()
        await self.db.refresh(instance)
        return instance

    async def update(self, id: str, data: dict[str, Any]) -> Optional[ModelType]:
        """Update a record by ID.

        Returns:
            Updated model instance or None if not found
        """
        instance = await self.get_by_id(id)
        if not instance:
            return None
        return await self.apply_update(instance, data)

    # ─── Delete ────────────────────────────────────────────

    async def soft_delete(self, id: str) -> bool:
        """Soft-delete a record (set is_deleted=True).

        Returns:
            True if deleted, False if not found
        """
        instance = await self.get_by_id(id)
        if not instance:
            return False

        instance.soft_delete()
        await self.db.flush()
        return True
