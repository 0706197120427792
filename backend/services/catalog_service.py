"""Service catalog: service types and services."""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestError, ConflictError, NotFoundError
from db.models.catalog import Service, ServiceType
from db.models.price import Price
from services.base import BaseService

logger = logging.getLogger(__name__)


class ServiceTypeService(BaseService[ServiceType]):
    def __init__(self, db: AsyncSession):
        super().__init__(ServiceType, db)

    async def get_or_404(self, type_id: str) -> ServiceType:
        service_type = await self.get_by_id(type_id)
        if not service_type:
            raise NotFoundError("Service type not found")
        return service_type

    async def create_type(self, data: dict) -> ServiceType:
        """Raises ConflictError if the code is already used."""
        if await self.find_by(code=data["code"]):
            raise ConflictError("Service type code already exists")
        service_type = await self.create(data)
        logger.info("Service type created: id=%s code=%s", service_type.id, service_type.code)
        return service_type

    async def update_type(self, service_type: ServiceType, data: dict) -> ServiceType:
        code = data.get("code")
        if code is not None and code != service_type.code:
            if await self.find_by(exclude_id=service_type.id, code=code):
                raise ConflictError("Service type code already exists")
        return await self.apply_update(service_type, data)

    async def delete_type(self, service_type: ServiceType) -> None:
        """Soft-delete; refused while live services reference the type."""
        in_use = (
            await self.db.execute(
                select(func.count()).select_from(Service).where(
                    Service.service_type_id == service_type.id,
                    Service.is_deleted == False,
                )
            )
        ).scalar() or 0
        if in_use:
            raise ConflictError("Service type still has services")
        service_type.soft_delete()
        await self.db.flush()


class ServiceService(BaseService[Service]):
    def __init__(self, db: AsyncSession):
        super().__init__(Service, db)

    async def get_or_404(self, service_id: str) -> Service:
        service = await self.get_by_id(service_id)
        if not service:
            raise NotFoundError("Service not found")
        return service

    async def list_services(
        self,
        offset: int = 0,
        limit: int = 50,
        service_type_id: Optional[str] = None,
        is_active: Optional[bool] = None,
    ):
        return await self.list(
            offset=offset,
            limit=limit,
            order_by="name",
            order_desc=False,
            filters={"service_type_id": service_type_id, "is_active": is_active},
        )

    async def create_service(self, data: dict) -> Service:
        """Raises BadRequestError for an unknown type and ConflictError for a taken code."""
        if not await ServiceTypeService(self.db).exists(data["service_type_id"]):
            raise BadRequestError("Service type does not exist")
        if await self.find_by(code=data["code"]):
            raise ConflictError("Service code already exists")
        service = await self.create(data)
        logger.info("Service created: id=%s code=%s", service.id, service.code)
        return service

    async def update_service(self, service: Service, data: dict) -> Service:
        type_id = data.get("service_type_id")
        if type_id is not None and not await ServiceTypeService(self.db).exists(type_id):
            raise BadRequestError("Service type does not exist")
        code = data.get("code")
        if code is not None and code != service.code:
            if await self.find_by(exclude_id=service.id, code=code):
                raise ConflictError("Service code already exists")
        return await self.apply_update(service, data)

    async def delete_service(self, service: Service) -> None:
        """Soft-delete; refused while live prices reference the service."""
        priced = (
            await self.db.execute(
                select(func.count()).select_from(Price).where(
                    Price.service_id == service.id,
                    Price.is_deleted == False,
                )
            )
        ).scalar() or 0
        if priced:
            raise ConflictError("Service still has prices")
        service.soft_delete()
        await self.db.flush()
