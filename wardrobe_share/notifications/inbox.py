"""Read and acknowledge notifications addressed to a user."""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from wardrobe_share.db import models
from wardrobe_share.services.errors import NotFoundError


class NotificationInbox:
    """Query helpers over the notification table."""

    async def list_notifications(
        self,
        session: AsyncSession,
        *,
        recipient_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[models.Notification], int]:
        """Return a page of notifications, newest first, and the unread count."""

        stmt = (
            select(models.Notification)
            .where(models.Notification.recipient_id == recipient_id)
            .order_by(models.Notification.created_at.desc(), models.Notification.id)
            .limit(max(1, min(limit, 200)))
            .offset(max(0, offset))
        )
        result = await session.execute(stmt)
        notifications = list(result.scalars().all())
        return notifications, await self.unread_count(session, recipient_id=recipient_id)

    async def unread_count(self, session: AsyncSession, *, recipient_id: str) -> int:
        stmt = select(func.count()).select_from(models.Notification).where(
            models.Notification.recipient_id == recipient_id,
            models.Notification.read.is_(False),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())

    async def mark_read(
        self,
        session: AsyncSession,
        *,
        recipient_id: str,
        notification_id: str,
    ) -> models.Notification:
        notification = await session.get(models.Notification, notification_id)
        if notification is None or notification.recipient_id != recipient_id:
            raise NotFoundError("Notification not found")
        notification.read = True
        await session.commit()
        return notification

    async def mark_all_read(self, session: AsyncSession, *, recipient_id: str) -> int:
        """Mark every unread notification as read and return how many changed."""

        stmt = (
            update(models.Notification)
            .where(
                models.Notification.recipient_id == recipient_id,
                models.Notification.read.is_(False),
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        await session.commit()
        return result.rowcount or 0
