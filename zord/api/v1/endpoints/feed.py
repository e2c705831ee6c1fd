"""
Feed Endpoints

- GET /feed           - Newest posts the current user may see
- GET /feed/trending  - Most liked posts of the last day
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from zord.api.deps import get_current_user
from zord.core.config import settings
from zord.db.database import get_db
from zord.models.user import User
from zord.schemas.post import PostListResponse
from zord.services.feed_service import FeedService

router = APIRouter(prefix="/feed", tags=["Feed"])


def get_feed_service(db: AsyncSession = Depends(get_db)) -> FeedService:
    """Dependency that provides FeedService instance."""
    return FeedService(db)


@router.get("", response_model=PostListResponse, summary="Personalised feed")
async def get_feed(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    service: FeedService = Depends(get_feed_service),
):
    """
    Posts visible to the current user, newest first.

    - **everyone** posts from any college
    - **collegeOnly** posts from the user's own college
    - **studentsOnly** posts from the user's own college, for students
    """
    return await service.get_feed(current_user.id, page=page, limit=limit)


@router.get("/trending", response_model=PostListResponse, summary="Trending posts")
async def get_trending(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    service: FeedService = Depends(get_feed_service),
):
    return await service.get_trending(current_user.id, page=page, limit=limit)
