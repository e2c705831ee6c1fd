"""
Post Repository

Data access layer for posts, hashtags, likes and comments.

Counters (likes_count, comments_count) are only ever changed through
single-statement UPDATEs so concurrent likes on one post never lose
an increment.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from zord.repositories.base import BaseRepository
from zord.models import Comment, Like, Post, PostHashtag, Visibility


class PostRepository(BaseRepository[Post]):
    """Repository for Post model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Post, db)

    # ============================================================
    # Lookups
    # ============================================================
    async def get_active(self, post_id: UUID) -> Optional[Post]:
        """Get a post that has not been soft-deleted."""
        post = await self.get_by_id(post_id)
        if post is None or not post.is_active:
            return None
        return post

    def _filtered(self, conditions: Sequence[Any]):
        query = select(Post).where(Post.is_active == True)
        for condition in conditions:
            if condition is not None:
                query = query.where(condition)
        return query

    async def find_posts(
        self,
        conditions: Sequence[Any] = (),
        order_by: Sequence[Any] = (),
        page: int = 1,
        limit: int = 10,
    ) -> List[Post]:
        """
        Active posts matching every condition.

        Args:
            conditions: SQL boolean clauses; None entries are ignored
            order_by: ORDER BY expressions, newest-first when empty
            page: 1-based page number
            limit: Page size
        """
        query = self._filtered(conditions).order_by(
            *(order_by or (Post.created_at.desc(),))
        )
        return await self._paginate(query, page, limit)

    async def count_posts(self, conditions: Sequence[Any] = ()) -> int:
        """Number of active posts matching every condition."""
        result = await self.db.execute(
            select(func.count(Post.id))
            .where(Post.is_active == True)
            .where(*[c for c in conditions if c is not None])
        )
        return result.scalar() or 0

    # ============================================================
    # Atomic counters
    # ============================================================
    async def _increment(self, column, post_id: UUID, delta: int) -> bool:
        result = await self.db.execute(
            update(Post)
            .where(Post.id == post_id, column + delta >= 0)
            .values({column: column + delta})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def increment_like_count(self, post_id: UUID, delta: int) -> bool:
        """
        Add delta to likes_count in one statement.

        Returns False (and changes nothing) if the post is missing or the
        counter would go negative.
        """
        return await self._increment(Post.likes_count, post_id, delta)

    async def increment_comment_count(self, post_id: UUID, delta: int) -> bool:
        """Add delta to comments_count in one statement, never below zero."""
        return await self._increment(Post.comments_count, post_id, delta)

    async def get_counters(self, post_id: UUID) -> Tuple[int, int]:
        """Current (likes_count, comments_count) read from the database."""
        result = await self.db.execute(
            select(Post.likes_count, Post.comments_count).where(Post.id == post_id)
        )
        row = result.one_or_none()
        return (row[0], row[1]) if row else (0, 0)

    # ============================================================
    # Likes
    # ============================================================
    async def add_like(self, post_id: UUID, user_id: UUID) -> bool:
        """
        Insert a like row.

        A concurrent duplicate trips the unique constraint; the session is
        rolled back and False is returned so no counter change survives.
        """
        self.db.add(Like(post_id=post_id, user_id=user_id))
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            return False
        return True

    async def remove_like(self, post_id: UUID, user_id: UUID) -> bool:
        """Delete a like row. Returns False if there was none."""
        result = await self.db.execute(
            delete(Like).where(Like.post_id == post_id, Like.user_id == user_id)
        )
        return result.rowcount == 1

    async def has_liked(self, post_id: UUID, user_id: UUID) -> bool:
        result = await self.db.execute(
            select(Like.id).where(Like.post_id == post_id, Like.user_id == user_id)
        )
        return result.first() is not None

    async def liked_post_ids(self, post_ids: Sequence[UUID], user_id: UUID) -> set:
        """Subset of post_ids the user has liked."""
        if not post_ids:
            return set()
        result = await self.db.execute(
            select(Like.post_id).where(Like.user_id == user_id, Like.post_id.in_(post_ids))
        )
        return set(result.scalars().all())

    async def list_likes(self, post_id: UUID, page: int = 1, limit: int = 20) -> Tuple[List[Like], int]:
        query = select(Like).where(Like.post_id == post_id).order_by(Like.created_at.desc())
        return await self._paginate(query, page, limit), await self._count(query)

    # ============================================================
    # Comments
    # ============================================================
    async def add_comment(self, post_id: UUID, user_id: UUID, content: str) -> Comment:
        comment = Comment(post_id=post_id, user_id=user_id, content=content)
        self.db.add(comment)
        await self.db.flush()
        return comment

    async def get_comment(self, comment_id: UUID) -> Optional[Comment]:
        result = await self.db.execute(select(Comment).where(Comment.id == comment_id))
        return result.unique().scalar_one_or_none()

    async def delete_comment(self, comment_id: UUID) -> bool:
        result = await self.db.execute(delete(Comment).where(Comment.id == comment_id))
        return result.rowcount == 1

    async def list_comments(self, post_id: UUID, page: int = 1, limit: int = 20) -> Tuple[List[Comment], int]:
        query = (
            select(Comment)
            .where(Comment.post_id == post_id, Comment.is_active == True)
            .order_by(Comment.created_at.desc())
        )
        return await self._paginate(query, page, limit), await self._count(query)

    # ============================================================
    # Hashtags
    # ============================================================
    def set_hashtags(self, post: Post, tags: Sequence[str]) -> None:
        """Replace a post's hashtag rows with tags."""
        current = {h.tag: h for h in post.hashtags}
        post.hashtags = [current.get(tag) or PostHashtag(tag=tag) for tag in tags]

    async def hashtag_counts(
        self,
        term: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 10,
    ) -> List[Tuple[str, int]]:
        """Hashtags of active posts with their post counts, most used first."""
        count = func.count(PostHashtag.post_id).label("count")
        query = (
            select(PostHashtag.tag, count)
            .join(Post, Post.id == PostHashtag.post_id)
            .where(Post.is_active == True)
        )
        if term:
            query = query.where(PostHashtag.tag.ilike(f"%{term}%"))
        if since is not None:
            query = query.where(Post.created_at >= since)
        query = query.group_by(PostHashtag.tag).order_by(count.desc(), PostHashtag.tag.asc()).limit(limit)

        result = await self.db.execute(query)
        return [(row.tag, row.count) for row in result.all()]

    # ============================================================
    # Deletion
    # ============================================================
    async def delete_with_dependents(self, post: Post) -> None:
        """
        Remove a post with its likes, comments and hashtags.

        Does not commit; notifications are removed by the caller
        in the same transaction.
        """
        await self.db.execute(delete(Like).where(Like.post_id == post.id))
        await self.db.execute(delete(Comment).where(Comment.post_id == post.id))
        await self.db.delete(post)
        await self.db.flush()

    # ============================================================
    # Administration
    # ============================================================
    async def list_all(
        self,
        user_id: Optional[UUID] = None,
        visibility: Optional[Visibility] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Post], int]:
        """Every post, including soft-deleted ones, newest first."""
        query = select(Post)
        if user_id is not None:
            query = query.where(Post.user_id == user_id)
        if visibility is not None:
            query = query.where(Post.visibility == visibility)
        query = query.order_by(Post.created_at.desc())

        return await self._paginate(query, page, limit), await self._count(query)

    async def count_by_visibility(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Post.visibility, func.count(Post.id)).group_by(Post.visibility)
        )
        return {Visibility(v).value: count for v, count in result.all()}

    async def count_all(self) -> int:
        result = await self.db.execute(select(func.count(Post.id)))
        return result.scalar() or 0

    async def count_comments(self) -> int:
        result = await self.db.execute(select(func.count(Comment.id)))
        return result.scalar() or 0

    async def daily_post_counts(self, since: datetime) -> List[Tuple[str, int]]:
        """(YYYY-MM-DD, posts created that day) from since onwards, oldest first."""
        day = func.date(Post.created_at).label("day")
        result = await self.db.execute(
            select(day, func.count(Post.id))
            .where(Post.created_at >= since)
            .group_by(day)
            .order_by(day)
        )
        return [(str(d), count) for d, count in result.all()]

    async def posts_of(self, user_id: UUID) -> List[Post]:
        result = await self.db.execute(select(Post).where(Post.user_id == user_id))
        return list(result.unique().scalars().all())

    async def remove_likes_by(self, user_id: UUID) -> List[UUID]:
        """
        Delete every like a user made and give the counters back.

        Returns the ids of the posts that lost a like. Does not commit.
        """
        result = await self.db.execute(select(Like.post_id).where(Like.user_id == user_id))
        post_ids = list(result.scalars().all())
        await self.db.execute(delete(Like).where(Like.user_id == user_id))
        for post_id in post_ids:
            await self.increment_like_count(post_id, -1)
        return post_ids

    async def remove_comments_by(self, user_id: UUID) -> int:
        """Delete every comment a user wrote, adjusting comment counters. Does not commit."""
        result = await self.db.execute(
            select(Comment.post_id, func.count(Comment.id))
            .where(Comment.user_id == user_id)
            .group_by(Comment.post_id)
        )
        per_post = result.all()
        for post_id, count in per_post:
            await self.increment_comment_count(post_id, -count)
        await self.db.execute(delete(Comment).where(Comment.user_id == user_id))
        return sum(count for _, count in per_post)
