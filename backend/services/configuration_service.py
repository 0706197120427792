"""Configuration service: key/value settings and the in-process snapshot.

Handlers that need a setting read :func:`current_configuration`, an
immutable mapping of the active entries. ``POST /configurations/refresh``
rebuilds it from the database after edits.
"""

import logging
from types import MappingProxyType
from typing import Mapping, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import CONFIGURATION_KEY_PREFIXES, ConfigurationType
from core.exceptions import ConflictError, NotFoundError
from db.models.configuration import Configuration
from services.base import BaseService

logger = logging.getLogger(__name__)

_snapshot: Mapping[str, str] = MappingProxyType({})

# Only these columns change after creation; the key is fixed
_EDITABLE = ("config_value", "description", "is_active")


def current_configuration() -> Mapping[str, str]:
    """Active configuration as of the last refresh."""
    return _snapshot


class ConfigurationService(BaseService[Configuration]):
    def __init__(self, db: AsyncSession):
        super().__init__(Configuration, db)

    async def get_or_404(self, config_id: str) -> Configuration:
        config = await self.get_by_id(config_id)
        if not config:
            raise NotFoundError("Configuration not found")
        return config

    async def list_configurations(
        self,
        config_type: Optional[ConfigurationType] = None,
        keyword: Optional[str] = None,
        offset: int = 0,
        limit: int = 50,
    ):
        """Entries ordered by key, optionally limited to one prefix group.

        Returns:
            Tuple of (items, total_count)
        """
        conditions = [Configuration.is_deleted == False]
        if config_type is not None:
            conditions.append(
                or_(*(Configuration.config_key.startswith(p) for p in CONFIGURATION_KEY_PREFIXES[config_type]))
            )
        if keyword:
            pattern = f"%{keyword}%"
            conditions.append(
                or_(Configuration.config_key.ilike(pattern), Configuration.description.ilike(pattern))
            )

        result = await self.db.execute(
            select(Configuration)
            .where(*conditions)
            .order_by(Configuration.config_key, Configuration.id)
            .offset(offset)
            .limit(limit)
        )
        total = (
            await self.db.execute(select(func.count()).select_from(Configuration).where(*conditions))
        ).scalar() or 0
        return result.scalars().all(), total

    async def create_configuration(self, data: dict) -> Configuration:
        """Raises ConflictError if the key is already used."""
        if await self.find_by(config_key=data["config_key"]):
            raise ConflictError("Configuration key already exists")
        config = await self.create(data)
        logger.info("Configuration created: key=%s", config.config_key)
        return config

    async def update_configuration(self, config: Configuration, data: dict) -> Configuration:
        return await self.apply_update(config, {k: v for k, v in data.items() if k in _EDITABLE})

    async def delete_configuration(self, config: Configuration) -> None:
        config.soft_delete()
        await self.db.flush()
        logger.info("Configuration deleted: key=%s", config.config_key)

    async def refresh(self) -> Mapping[str, str]:
        """Reload active entries into the snapshot and return it."""
        global _snapshot

        result = await self.db.execute(
            select(Configuration.config_key, Configuration.config_value).where(
                Configuration.is_deleted == False,
                Configuration.is_active == True,
            )
        )
        _snapshot = MappingProxyType({key: value for key, value in result.all()})
        logger.info("Configuration snapshot refreshed: %d entries", len(_snapshot))
        return _snapshot
