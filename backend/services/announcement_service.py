"""Announcement service: authoring and the dashboard feed."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import DASHBOARD_ANNOUNCEMENT_LIMIT
from core.exceptions import BadRequestError, NotFoundError
from core.utils import as_utc, utc_now
from db.models.announcement import Announcement
from services.base import BaseService

logger = logging.getLogger(__name__)


class AnnouncementService(BaseService[Announcement]):
    def __init__(self, db: AsyncSession):
        super().__init__(Announcement, db)

    async def get_or_404(self, announcement_id: str) -> Announcement:
        announcement = await self.get_by_id(announcement_id)
        if not announcement:
            raise NotFoundError("Announcement not found")
        return announcement

    async def list_announcements(
        self,
        offset: int = 0,
        limit: int = 50,
        keyword: Optional[str] = None,
        is_active: Optional[bool] = None,
    ):
        """Most recently edited first.

        Returns:
            Tuple of (items, total_count)
        """
        conditions = [Announcement.is_deleted == False]
        if keyword:
            pattern = f"%{keyword}%"
            conditions.append(or_(Announcement.title.ilike(pattern), Announcement.content.ilike(pattern)))
        if is_active is not None:
            conditions.append(Announcement.is_active == is_active)

        result = await self.db.execute(
            select(Announcement)
            .where(*conditions)
            .order_by(Announcement.updated_at.desc(), Announcement.id)
            .offset(offset)
            .limit(limit)
        )
        total = (
            await self.db.execute(select(func.count()).select_from(Announcement).where(*conditions))
        ).scalar() or 0
        return result.scalars().all(), total

    async def published(
        self, now: Optional[datetime] = None, limit: int = DASHBOARD_ANNOUNCEMENT_LIMIT
    ) -> list[Announcement]:
        """Active announcements already published and not yet expired, newest first."""
        now = as_utc(now) or utc_now()
        result = await self.db.execute(
            select(Announcement)
            .where(
                Announcement.is_deleted == False,
                Announcement.is_active == True,
                Announcement.publish_time <= now,
                or_(Announcement.expire_time.is_(None), Announcement.expire_time >= now),
            )
            .order_by(Announcement.publish_time.desc(), Announcement.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def create_announcement(self, data: dict, author_id: Optional[str] = None) -> Announcement:
        """Raises BadRequestError when the announcement would expire before it is published."""
        data = {
            **data,
            "publish_time": as_utc(data["publish_time"]),
            "expire_time": as_utc(data.get("expire_time")),
        }
        _check_window(data["publish_time"], data["expire_time"])
        announcement = await self.create({**data, "created_by": author_id})
        logger.info("Announcement created: id=%s by=%s", announcement.id, author_id)
        return announcement

    async def update_announcement(self, announcement: Announcement, data: dict) -> Announcement:
        """Apply ``data``; an explicit ``expire_time: None`` clears the expiry."""
        data = dict(data)
        for key in ("publish_time", "expire_time"):
            if key in data:
                data[key] = as_utc(data[key])
        publish_time = data.get("publish_time") or as_utc(announcement.publish_time)
        expire_time = data["expire_time"] if "expire_time" in data else as_utc(announcement.expire_time)
        _check_window(publish_time, expire_time)

        if "expire_time" in data and data["expire_time"] is None:
            announcement.expire_time = None
        return await self.apply_update(announcement, data)

    async def delete_announcement(self, announcement: Announcement) -> None:
        announcement.soft_delete()
        await self.db.flush()
        logger.info("Announcement deleted: id=%s", announcement.id)


def _check_window(publish_time: datetime, expire_time: Optional[datetime]) -> None:
    if expire_time is not None and expire_time < publish_time:
        raise BadRequestError("Expire time must not be before publish time")
