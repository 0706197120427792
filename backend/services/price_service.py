"""Price service: price records owned by organizations.

Scope is decided by the caller through the gate; this service only applies
the resulting organization id set to queries.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import EXPORT_ROW_LIMIT
from core.exceptions import BadRequestError
from db.models.catalog import Service
from db.models.organization import Organization
from db.models.price import Price
from services.base import BaseService

logger = logging.getLogger(__name__)


class PriceService(BaseService[Price]):
    def __init__(self, db: AsyncSession):
        super().__init__(Price, db)

    @staticmethod
    def _conditions(
        organization_ids: Optional[Iterable[str]] = None,
        service_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        effective_from: Optional[datetime] = None,
        effective_to: Optional[datetime] = None,
    ) -> list:
        conditions = [Price.is_deleted == False]
        if organization_ids is not None:
            conditions.append(Price.organization_id.in_(list(organization_ids)))
        if organization_id:
            conditions.append(Price.organization_id == organization_id)
        if service_id:
            conditions.append(Price.service_id == service_id)
        if effective_from:
            conditions.append(Price.effective_date >= effective_from)
        if effective_to:
            conditions.append(Price.effective_date <= effective_to)
        return conditions

    async def list_prices(self, offset: int = 0, limit: int = 50, **filters):
        """Prices newest-effective first.

        Args:
            organization_ids: Owning organizations the caller may see;
                None means unrestricted
            service_id, organization_id, effective_from, effective_to:
                Optional narrowing filters

        Returns:
            Tuple of (items, total_count)
        """
        conditions = self._conditions(**filters)
        result = await self.db.execute(
            select(Price)
            .where(*conditions)
            .order_by(Price.effective_date.desc(), Price.created_at.desc(), Price.id)
            .offset(offset)
            .limit(limit)
        )
        total = (
            await self.db.execute(select(func.count()).select_from(Price).where(*conditions))
        ).scalar() or 0
        return result.scalars().all(), total

    async def export_rows(self, limit: int = EXPORT_ROW_LIMIT, **filters) -> list:
        """Filtered prices with organization and service names, in listing order."""
        result = await self.db.execute(
            select(
                Price.id,
                Organization.name.label("organization_name"),
                Service.code.label("service_code"),
                Service.name.label("service_name"),
                Price.amount,
                Price.currency,
                Price.effective_date,
                Price.remark,
                Price.updated_at,
            )
            .join(Organization, Price.organization_id == Organization.id)
            .join(Service, Price.service_id == Service.id)
            .where(*self._conditions(**filters))
            .order_by(Price.effective_date.desc(), Price.created_at.desc(), Price.id)
            .limit(limit)
        )
        return result.all()

    async def _check_references(self, organization_id: Optional[str], service_id: Optional[str]) -> None:
        if organization_id is not None:
            org = await self.db.get(Organization, organization_id)
            if org is None or org.is_deleted:
                raise BadRequestError("Organization does not exist")
        if service_id is not None:
            service = await self.db.get(Service, service_id)
            if service is None or service.is_deleted:
                raise BadRequestError("Service does not exist")

    async def create_price(self, data: dict) -> Price:
        """Raises BadRequestError when the organization or service does not exist."""
        await self._check_references(data["organization_id"], data["service_id"])
        price = await self.create(data)
        logger.info(
            "Price created: id=%s org=%s service=%s", price.id, price.organization_id, price.service_id
        )
        return price

    async def update_price(self, price: Price, data: dict) -> Price:
        await self._check_references(data.get("organization_id"), data.get("service_id"))
        return await self.apply_update(price, data)

    async def delete_price(self, price: Price) -> None:
        price.soft_delete()
        await self.db.flush()
        logger.info("Price deleted: id=%s", price.id)
