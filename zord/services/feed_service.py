"""
Feed Service

Visibility-scoped post listings:
- Personalised feed (newest first)
- Trending (most liked within the rolling window)
- One user's posts

Every listing goes through `list_visible_posts`, which applies the SQL
visibility filter and then re-checks each post with `is_visible`.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from zord.core.config import settings
from zord.core.exceptions import NotFoundError
from zord.models import Post
from zord.repositories.post_repo import PostRepository
from zord.repositories.user_repo import UserRepository
from zord.schemas.post import PostResponse
from zord.services.visibility import Viewer, build_visibility_filter, filter_visible

logger = logging.getLogger(__name__)


class FeedService:
    """Service class for visibility-scoped post listings."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.post_repo = PostRepository(db)
        self.user_repo = UserRepository(db)

    # ============================================================
    # Viewer Context
    # ============================================================
    async def resolve_viewer(self, viewer_id: UUID) -> Viewer:
        """
        Look the viewer up in the identity directory.

        Raises:
            AuthorizationContextMissingError: If the viewer cannot be resolved
        """
        user = await self.user_repo.find_user(viewer_id)
        return Viewer.from_user(user)

    # ============================================================
    # Shared Listing
    # ============================================================
    async def list_visible_posts(
        self,
        viewer: Viewer,
        conditions: Sequence[Any] = (),
        order_by: Sequence[Any] = (),
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """
        One page of posts matching conditions that viewer may see.

        Args:
            viewer: Resolved viewer
            conditions: Extra SQL clauses (search terms, time window)
            order_by: ORDER BY expressions; newest first when empty
            page: 1-based page number
            limit: Page size

        Returns:
            Dict with posts, total, total_pages, current_page
        """
        conditions = [*conditions, build_visibility_filter(viewer)]

        candidates = await self.post_repo.find_posts(conditions, order_by, page, limit)
        posts = filter_visible(viewer, candidates)
        if len(posts) != len(candidates):
            logger.debug(
                f"Visibility re-check dropped {len(candidates) - len(posts)} "
                f"posts for viewer {viewer.id}"
            )

        total = await self.post_repo.count_posts(conditions)
        liked = await self.post_repo.liked_post_ids([p.id for p in posts], viewer.id)

        return {
            "posts": [PostResponse.from_post(p, is_liked=p.id in liked) for p in posts],
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
            "current_page": page,
        }

    # ============================================================
    # Feeds
    # ============================================================
    async def get_feed(self, viewer_id: UUID, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """Newest posts the viewer may see."""
        viewer = await self.resolve_viewer(viewer_id)
        return await self.list_visible_posts(viewer, page=page, limit=limit)

    async def get_trending(self, viewer_id: UUID, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """Most liked posts created within the trending window."""
        viewer = await self.resolve_viewer(viewer_id)
        since = datetime.now(timezone.utc) - timedelta(hours=settings.TRENDING_WINDOW_HOURS)
        return await self.list_visible_posts(
            viewer,
            conditions=[Post.created_at >= since],
            order_by=[Post.likes_count.desc(), Post.created_at.desc()],
            page=page,
            limit=limit,
        )

    async def get_user_posts(
        self,
        viewer_id: UUID,
        owner_id: UUID,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """A user's posts, limited to what the viewer may see."""
        viewer = await self.resolve_viewer(viewer_id)
        owner = await self.user_repo.find_user(owner_id)
        if owner is None or not owner.is_active:
            raise NotFoundError("User not found")
        return await self.list_visible_posts(
            viewer,
            conditions=[Post.user_id == owner_id],
            page=page,
            limit=limit,
        )
