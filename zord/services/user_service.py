"""
User Service

Profiles, the college directory and the follower graph.
Following someone notifies them; unfollowing does not.
"""

import logging
import math
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from zord.core.exceptions import AccessDeniedError, NotFoundError, ValidationFailedError
from zord.models import Follow, NotificationType, User, UserRole
from zord.repositories.follow_repo import FollowRepository
from zord.repositories.user_repo import UserRepository
from zord.schemas.user import ProfileUpdate, UserProfileResponse, UserPublic
from zord.services.notification_service import NotificationService
from zord.services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


def _page(items, total: int, page: int, limit: int, key: str) -> Dict[str, Any]:
    return {
        key: [UserPublic.model_validate(u) for u in items],
        "total": total,
        "total_pages": math.ceil(total / limit) if limit else 0,
        "current_page": page,
    }


class UserService:
    """Service class for profile and follower-graph operations."""

    def __init__(self, db: AsyncSession, connections: ConnectionManager):
        self.db = db
        self.user_repo = UserRepository(db)
        self.follow_repo = FollowRepository(db)
        self.notification_service = NotificationService(db, connections)

    async def _get_active_user(self, user_id: UUID) -> User:
        user = await self.user_repo.find_user(user_id)
        if user is None or not user.is_active:
            raise NotFoundError("User not found")
        return user

    # ============================================================
    # Profiles
    # ============================================================
    async def get_profile(self, viewer: User, user_id: UUID) -> UserProfileResponse:
        """Public profile with follower counts and whether viewer follows it."""
        user = await self._get_active_user(user_id)
        return UserProfileResponse(
            id=user.id,
            name=user.name,
            avatar=user.avatar or "",
            role=user.role,
            college_id=user.college_id,
            college_name=user.college_name,
            bio=user.bio or "",
            created_at=user.created_at,
            followers_count=await self.follow_repo.count_followers(user.id),
            following_count=await self.follow_repo.count_following(user.id),
            is_following=await self.follow_repo.is_following(viewer.id, user.id),
        )

    async def update_profile(self, actor: User, user_id: UUID, data: ProfileUpdate) -> UserProfileResponse:
        """
        Update name, bio or avatar.

        Users may only update themselves; admins may update anyone.

        Raises:
            AccessDeniedError: If actor is someone else and not an admin
            NotFoundError: If the user does not exist
        """
        if actor.id != user_id and actor.role != UserRole.ADMIN:
            raise AccessDeniedError("Access denied")

        user = await self._get_active_user(user_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)
        if update_data:
            await self.user_repo.update(user.id, **update_data)

        return await self.get_profile(actor, user_id)

    async def list_college_members(
        self,
        viewer: User,
        college_id: str,
        role: Optional[UserRole] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """Active members of a college other than the viewer."""
        users, total = await self.user_repo.list_college_members(
            college_id, exclude_id=viewer.id, role=role, page=page, limit=limit
        )
        return _page(users, total, page, limit, "users")

    # ============================================================
    # Follow Graph
    # ============================================================
    async def toggle_follow(self, actor: User, target_id: UUID) -> bool:
        """
        Follow target, or unfollow if already following.

        Returns:
            True if actor now follows target

        Raises:
            NotFoundError: If target does not exist or is inactive
            ValidationFailedError: If actor tries to follow themself
        """
        target = await self._get_active_user(target_id)
        if target.id == actor.id:
            raise ValidationFailedError("You cannot follow yourself")

        actor_id = actor.id
        if await self.follow_repo.remove(actor_id, target.id):
            await self.db.commit()
            logger.info(f"User {actor_id} unfollowed {target_id}")
            return False

        self.db.add(Follow(follower_id=actor_id, following_id=target.id))
        try:
            await self.db.flush()
        except IntegrityError:
            # A concurrent request created the same edge
            await self.db.rollback()
            return True

        await self.notification_service.notify(
            receiver_id=target.id,
            sender=actor,
            notification_type=NotificationType.FOLLOW.value,
            message=f"{actor.name} started following you",
        )
        await self.db.commit()
        logger.info(f"User {actor_id} followed {target_id}")
        return True

    async def list_followers(self, user_id: UUID, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        await self._get_active_user(user_id)
        users, total = await self.follow_repo.list_followers(user_id, page, limit)
        return _page(users, total, page, limit, "followers")

    async def list_following(self, user_id: UUID, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        await self._get_active_user(user_id)
        users, total = await self.follow_repo.list_following(user_id, page, limit)
        return _page(users, total, page, limit, "following")
