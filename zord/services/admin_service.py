"""
Admin Service

Moderation and platform statistics, restricted to admins:
- Account listing, role changes, activation and deletion
- Post listing and deletion
- Platform statistics

Deactivating an account keeps its data. The owner's college-scoped
posts drop out of every listing until the account is reactivated.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from zord.core.exceptions import AccessDeniedError, NotFoundError, ValidationFailedError
from zord.models import User, UserRole, Visibility
from zord.repositories.follow_repo import FollowRepository
from zord.repositories.notification_repo import NotificationRepository
from zord.repositories.post_repo import PostRepository
from zord.repositories.user_repo import UserRepository
from zord.schemas.admin import (
    AdminUserResponse,
    CollegeCount,
    CollegeMembership,
    DailyActivity,
    PlatformOverview,
    PlatformStats,
)
from zord.schemas.post import PostResponse
from zord.services.post_service import PostService
from zord.services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_DAYS = 7


def require_admin(actor: User) -> None:
    """
    Raises:
        AccessDeniedError: If actor is not an admin
    """
    if actor.role != UserRole.ADMIN:
        raise AccessDeniedError("Admin access required")


class AdminService:
    """Service class for admin-only operations."""

    def __init__(self, db: AsyncSession, connections: ConnectionManager):
        self.db = db
        self.user_repo = UserRepository(db)
        self.post_repo = PostRepository(db)
        self.follow_repo = FollowRepository(db)
        self.notification_repo = NotificationRepository(db)
        self.post_service = PostService(db, connections)

    async def _get_user(self, user_id: UUID) -> User:
        user = await self.user_repo.find_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    # ============================================================
    # Accounts
    # ============================================================
    async def list_users(
        self,
        actor: User,
        role: Optional[UserRole] = None,
        college_id: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """All accounts matching the filters, plus account counts per role."""
        require_admin(actor)
        users, total = await self.user_repo.list_accounts(
            role=role, college_id=college_id, search=search, page=page, limit=limit
        )
        return {
            "users": [AdminUserResponse.model_validate(u) for u in users],
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
            "current_page": page,
            "stats": await self.user_repo.count_by_role(),
        }

    async def update_role(self, actor: User, user_id: UUID, role: UserRole) -> User:
        """
        Change a user's role.

        Raises:
            AccessDeniedError: If actor is not an admin
            NotFoundError: If the user does not exist
        """
        require_admin(actor)
        user = await self._get_user(user_id)
        user.role = role
        await self.db.commit()

        logger.info(f"Admin {actor.id} set role of {user_id} to {role.value}")
        return user

    async def set_status(self, actor: User, user_id: UUID, is_active: bool) -> User:
        """
        Activate or deactivate an account.

        Raises:
            AccessDeniedError: If actor is not an admin
            NotFoundError: If the user does not exist
            ValidationFailedError: If actor targets their own account
        """
        require_admin(actor)
        user = await self._get_user(user_id)
        if user.id == actor.id:
            raise ValidationFailedError("You cannot change your own status")

        user.is_active = is_active
        await self.db.commit()

        logger.info(
            f"Admin {actor.id} {'activated' if is_active else 'deactivated'} user {user_id}"
        )
        return user

    async def delete_user(self, actor: User, user_id: UUID) -> None:
        """
        Delete an account with its posts, likes, comments, follows and
        notifications. Counters on other users' posts are given back.

        Raises:
            AccessDeniedError: If actor is not an admin
            NotFoundError: If the user does not exist
            ValidationFailedError: If actor targets their own account
        """
        require_admin(actor)
        user = await self._get_user(user_id)
        if user.id == actor.id:
            raise ValidationFailedError("You cannot delete your own account")

        for post in await self.post_repo.posts_of(user.id):
            await self.notification_repo.delete_for_post(post.id)
            await self.post_repo.delete_with_dependents(post)

        await self.post_repo.remove_likes_by(user.id)
        await self.post_repo.remove_comments_by(user.id)
        await self.notification_repo.delete_for_user(user.id)
        await self.follow_repo.delete_for_user(user.id)
        await self.user_repo.delete_account(user.id)
        await self.db.commit()

        logger.info(f"Admin {actor.id} deleted user {user_id}")

    # ============================================================
    # Posts
    # ============================================================
    async def list_posts(
        self,
        actor: User,
        user_id: Optional[UUID] = None,
        visibility: Optional[Visibility] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        """Every post matching the filters, plus post counts per visibility tier."""
        require_admin(actor)
        posts, total = await self.post_repo.list_all(
            user_id=user_id, visibility=visibility, page=page, limit=limit
        )
        return {
            "posts": [PostResponse.from_post(p) for p in posts],
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
            "current_page": page,
            "stats": await self.post_repo.count_by_visibility(),
        }

    async def delete_post(self, actor: User, post_id: UUID) -> None:
        require_admin(actor)
        await self.post_service.delete_post(actor, post_id)

    # ============================================================
    # Statistics
    # ============================================================
    async def get_stats(self, actor: User, college_id: Optional[str] = None) -> PlatformStats:
        """
        Platform totals, breakdowns and the last week's posting activity.

        With college_id, also reports that college's active members and
        students, the sets college-scoped visibility is decided against.
        """
        require_admin(actor)
        since = datetime.now(timezone.utc) - timedelta(days=RECENT_ACTIVITY_DAYS)

        college = None
        if college_id:
            college = CollegeMembership(
                college_id=college_id,
                members=len(await self.user_repo.find_users_by_college(college_id)),
                students=len(await self.user_repo.find_students_by_college(college_id)),
            )

        return PlatformStats(
            overview=PlatformOverview(
                total_users=await self.user_repo.count_accounts(),
                active_users=await self.user_repo.count_accounts(active_only=True),
                total_posts=await self.post_repo.count_all(),
                total_comments=await self.post_repo.count_comments(),
            ),
            users_by_role=await self.user_repo.count_by_role(),
            posts_by_visibility=await self.post_repo.count_by_visibility(),
            recent_activity=[
                DailyActivity(date=day, posts=count)
                for day, count in await self.post_repo.daily_post_counts(since)
            ],
            top_colleges=[
                CollegeCount(college_name=name, user_count=count)
                for name, count in await self.user_repo.top_colleges()
            ],
            college=college,
        )
