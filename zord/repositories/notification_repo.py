"""
Notification Repository

Data access layer for persisted notifications.
"""

from typing import List, Tuple
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from zord.repositories.base import BaseRepository
from zord.models import Notification


class NotificationRepository(BaseRepository[Notification]):
    """Repository for Notification model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Notification, db)

    async def list_for_receiver(
        self,
        receiver_id: UUID,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Notification], int]:
        """A receiver's active notifications, newest first."""
        query = select(Notification).where(
            Notification.receiver_id == receiver_id,
            Notification.is_active == True,
        )
        if unread_only:
            query = query.where(Notification.seen == False)
        query = query.order_by(Notification.created_at.desc())

        return await self._paginate(query, page, limit), await self._count(query)

    async def count_unseen(self, receiver_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.receiver_id == receiver_id,
                Notification.seen == False,
                Notification.is_active == True,
            )
        )
        return result.scalar() or 0

    async def mark_all_seen(self, receiver_id: UUID) -> int:
        """Flip every unseen notification of one receiver. Returns rows changed."""
        result = await self.db.execute(
            update(Notification)
            .where(
                Notification.receiver_id == receiver_id,
                Notification.seen == False,
            )
            .values(seen=True)
        )
        await self.db.commit()
        return result.rowcount

    async def delete_for_post(self, post_id: UUID) -> int:
        """Delete every notification that references a post. Does not commit."""
        result = await self.db.execute(
            delete(Notification).where(Notification.post_id == post_id)
        )
        return result.rowcount


    async def delete_for_user(self, user_id: UUID) -> int:
        """Delete notifications sent or received by a user. Does not commit."""
        result = await self.db.execute(
            delete(Notification).where(
                or_(Notification.sender_id == user_id, Notification.receiver_id == user_id)
            )
        )
        return result.rowcount
