"""
Search Service

- Users by name, email or bio
- Posts by caption or hashtag, passed through the same visibility
  rules as the feed
- Hashtags by substring, and trending hashtags
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from zord.core.config import settings
from zord.core.exceptions import ValidationFailedError
from zord.models import Post, PostHashtag
from zord.repositories.post_repo import PostRepository
from zord.repositories.user_repo import UserRepository
from zord.schemas.post import HashtagCount
from zord.schemas.user import UserPublic
from zord.services.feed_service import FeedService


def _require_term(q: str) -> str:
    term = (q or "").strip()
    if not term:
        raise ValidationFailedError("Search query is required")
    return term


class SearchService:
    """Service class for search."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)
        self.post_repo = PostRepository(db)
        self.feed_service = FeedService(db)

    async def search_users(self, viewer_id: UUID, q: str, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        term = _require_term(q)
        users, total = await self.user_repo.search(term, exclude_id=viewer_id, page=page, limit=limit)
        return {
            "users": [UserPublic.model_validate(u) for u in users],
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
            "current_page": page,
        }

    async def search_posts(self, viewer_id: UUID, q: str, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """Posts whose caption or hashtags contain q, visible to the viewer."""
        term = _require_term(q)
        viewer = await self.feed_service.resolve_viewer(viewer_id)

        tag_term = term.lstrip("#")
        tagged = select(PostHashtag.post_id).where(PostHashtag.tag.ilike(f"%{tag_term}%"))
        match = or_(Post.caption.ilike(f"%{term}%"), Post.id.in_(tagged))

        result = await self.feed_service.list_visible_posts(
            viewer, conditions=[match], page=page, limit=limit
        )
        result["query"] = q
        return result

    async def search_hashtags(self, q: str, limit: int = 10) -> Dict[str, Any]:
        term = _require_term(q).lstrip("#")
        counts = await self.post_repo.hashtag_counts(term=term, limit=limit)
        return {
            "hashtags": [HashtagCount(hashtag=tag, count=count) for tag, count in counts],
            "query": q,
        }

    async def trending_hashtags(self, limit: int = 20) -> Dict[str, Any]:
        since = datetime.now(timezone.utc) - timedelta(hours=settings.TRENDING_WINDOW_HOURS)
        counts = await self.post_repo.hashtag_counts(since=since, limit=limit)
        return {"hashtags": [HashtagCount(hashtag=tag, count=count) for tag, count in counts]}
