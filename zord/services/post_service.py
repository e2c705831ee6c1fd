"""
Post Service

Business logic for posts, likes and comments.

Likes and comments notify the post owner through NotificationService.
The like/comment row, the counter update and the notification are
committed in one transaction.
"""

import logging
import math
from typing import Any, Dict
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from zord.core.exceptions import AccessDeniedError, NotFoundError
from zord.models import NotificationType, Post, PostHashtag, User, UserRole
from zord.models.post import extract_hashtags
from zord.repositories.post_repo import PostRepository
from zord.schemas.post import (
    CommentResponse,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from zord.schemas.user import UserSummary
from zord.services.notification_service import NotificationService
from zord.services.visibility import Viewer, is_visible
from zord.services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)


def _can_moderate(actor: User, owner_id: UUID) -> bool:
    return actor.id == owner_id or actor.role == UserRole.ADMIN


class PostService:
    """Service class for post operations."""

    def __init__(self, db: AsyncSession, connections: ConnectionManager):
        """Initialize with database session and the realtime registry."""
        self.db = db
        self.post_repo = PostRepository(db)
        self.notification_service = NotificationService(db, connections)

    # ============================================================
    # Helpers
    # ============================================================
    async def _get_visible_post(self, user: User, post_id: UUID) -> Post:
        """
        Active post the user may see.

        Posts hidden from the user are reported as missing.
        """
        post = await self.post_repo.get_active(post_id)
        if post is None or not is_visible(Viewer.from_user(user), post):
            raise NotFoundError("Post not found")
        return post

    # ============================================================
    # Create Post
    # ============================================================
    async def create_post(self, user: User, data: PostCreate) -> PostResponse:
        """
        Create a post owned by user.

        Hashtags are extracted from the caption.
        """
        post = Post(
            owner=user,
            caption=data.caption,
            media_url=data.media_url,
            media_type=data.media_type,
            media_public_id=data.media_public_id,
            visibility=data.visibility,
            likes_count=0,
            comments_count=0,
            is_active=True,
            hashtags=[PostHashtag(tag=tag) for tag in extract_hashtags(data.caption)],
        )
        self.db.add(post)
        await self.db.commit()

        logger.info(f"Post {post.id} created by {user.id} ({post.visibility.value})")
        return PostResponse.from_post(post)

    # ============================================================
    # Get Single Post
    # ============================================================
    async def get_post(self, user: User, post_id: UUID) -> PostResponse:
        """
        Get a post if the user may see it.

        Raises:
            NotFoundError: If missing, deleted or hidden from the user
        """
        post = await self._get_visible_post(user, post_id)
        return PostResponse.from_post(post, await self.post_repo.has_liked(post.id, user.id))

    # ============================================================
    # Update Post
    # ============================================================
    async def update_post(self, user: User, post_id: UUID, data: PostUpdate) -> PostResponse:
        """
        Update caption and/or visibility.

        Only the owner or an admin may change a post.

        Raises:
            NotFoundError: If the post does not exist
            AccessDeniedError: If the user is neither owner nor admin
        """
        post = await self.post_repo.get_active(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        if not _can_moderate(user, post.user_id):
            raise AccessDeniedError("Access denied")

        update_data = data.model_dump(exclude_unset=True)
        if "caption" in update_data:
            post.caption = update_data["caption"] or None
            self.post_repo.set_hashtags(post, extract_hashtags(post.caption))
        if update_data.get("visibility") is not None:
            post.visibility = update_data["visibility"]

        await self.db.commit()
        return PostResponse.from_post(post, await self.post_repo.has_liked(post.id, user.id))

    # ============================================================
    # Delete Post
    # ============================================================
    async def delete_post(self, user: User, post_id: UUID) -> None:
        """
        Delete a post with its likes, comments, hashtags and every
        notification that references it.

        Raises:
            NotFoundError: If the post does not exist
            AccessDeniedError: If the user is neither owner nor admin
        """
        post = await self.post_repo.get_by_id(post_id)
        if post is None:
            raise NotFoundError("Post not found")
        if not _can_moderate(user, post.user_id):
            raise AccessDeniedError("Access denied")

        await self.notification_service.delete_for_post(post.id)
        await self.post_repo.delete_with_dependents(post)
        await self.db.commit()

        logger.info(f"Post {post_id} deleted by {user.id}")

    # ============================================================
    # Like / Unlike
    # ============================================================
    async def toggle_like(self, user: User, post_id: UUID) -> Dict[str, Any]:
        """
        Like the post, or unlike it if already liked.

        The counter moves only when a Like row was actually inserted or
        deleted, so it always equals the number of Like rows.
        """
        post = await self._get_visible_post(user, post_id)
        post_id, owner_id, user_id = post.id, post.user_id, user.id

        if await self.post_repo.remove_like(post_id, user_id):
            await self.post_repo.increment_like_count(post_id, -1)
            await self.db.commit()
            is_liked = False
        else:
            if await self.post_repo.add_like(post_id, user_id):
                await self.post_repo.increment_like_count(post_id, 1)
                await self.notification_service.notify(
                    receiver_id=owner_id,
                    sender=user,
                    notification_type=NotificationType.LIKE.value,
                    message=f"{user.name} liked your post",
                    post_id=post_id,
                )
            await self.db.commit()
            is_liked = True

        likes_count, _ = await self.post_repo.get_counters(post_id)
        return {
            "message": "Post liked" if is_liked else "Post unliked",
            "is_liked": is_liked,
            "likes_count": likes_count,
        }

    async def list_likes(self, user: User, post_id: UUID, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """Users who liked a post, most recent first."""
        post = await self._get_visible_post(user, post_id)
        likes, total = await self.post_repo.list_likes(post.id, page, limit)
        return {
            "likes": [UserSummary.model_validate(like.user) for like in likes],
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
            "current_page": page,
        }

    # ============================================================
    # Comments
    # ============================================================
    async def add_comment(self, user: User, post_id: UUID, content: str) -> CommentResponse:
        """Comment on a post and notify its owner."""
        post = await self._get_visible_post(user, post_id)
        post_id, owner_id = post.id, post.user_id

        comment = await self.post_repo.add_comment(post_id, user.id, content)
        comment.author = user
        await self.post_repo.increment_comment_count(post_id, 1)

        await self.notification_service.notify(
            receiver_id=owner_id,
            sender=user,
            notification_type=NotificationType.COMMENT.value,
            message=f"{user.name} commented on your post",
            post_id=post_id,
        )
        await self.db.commit()

        return CommentResponse.model_validate(comment)

    async def list_comments(self, user: User, post_id: UUID, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        post = await self._get_visible_post(user, post_id)
        comments, total = await self.post_repo.list_comments(post.id, page, limit)
        return {
            "comments": [CommentResponse.model_validate(c) for c in comments],
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
            "current_page": page,
        }

    async def delete_comment(self, user: User, comment_id: UUID) -> None:
        """
        Delete a comment. Only its author or an admin may do so.

        Raises:
            NotFoundError: If the comment does not exist
            AccessDeniedError: If the user is neither author nor admin
        """
        comment = await self.post_repo.get_comment(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        if not _can_moderate(user, comment.user_id):
            raise AccessDeniedError("Access denied")

        post_id = comment.post_id
        if await self.post_repo.delete_comment(comment_id):
            await self.post_repo.increment_comment_count(post_id, -1)
        await self.db.commit()
