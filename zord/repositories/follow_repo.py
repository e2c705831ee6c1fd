"""
Follow Repository

Data access layer for the follower graph.
"""

from typing import List, Tuple
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from zord.repositories.base import BaseRepository
from zord.models import Follow, User


class FollowRepository(BaseRepository[Follow]):
    """Repository for Follow model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Follow, db)

    async def is_following(self, follower_id: UUID, following_id: UUID) -> bool:
        result = await self.db.execute(
            select(Follow.id).where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
        )
        return result.first() is not None

    async def remove(self, follower_id: UUID, following_id: UUID) -> bool:
        """Delete the edge. Returns False if it did not exist."""
        result = await self.db.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id,
                Follow.following_id == following_id,
            )
        )
        return result.rowcount == 1

    async def count_followers(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Follow.id)).where(Follow.following_id == user_id)
        )
        return result.scalar() or 0

    async def count_following(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Follow.id)).where(Follow.follower_id == user_id)
        )
        return result.scalar() or 0

    async def list_followers(self, user_id: UUID, page: int = 1, limit: int = 20) -> Tuple[List[User], int]:
        """Active users following user_id, most recent first."""
        query = (
            select(User)
            .join(Follow, Follow.follower_id == User.id)
            .where(Follow.following_id == user_id, User.is_active == True)
            .order_by(Follow.created_at.desc())
        )
        return await self._paginate(query, page, limit), await self._count(query)

    async def list_following(self, user_id: UUID, page: int = 1, limit: int = 20) -> Tuple[List[User], int]:
        """Active users that user_id follows, most recent first."""
        query = (
            select(User)
            .join(Follow, Follow.following_id == User.id)
            .where(Follow.follower_id == user_id, User.is_active == True)
            .order_by(Follow.created_at.desc())
        )
        return await self._paginate(query, page, limit), await self._count(query)

    async def delete_for_user(self, user_id: UUID) -> int:
        """Drop every edge touching user_id. Does not commit."""
        result = await self.db.execute(
            delete(Follow).where(
                or_(Follow.follower_id == user_id, Follow.following_id == user_id)
            )
        )
        return result.rowcount
