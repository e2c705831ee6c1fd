"""
Search Endpoints

- GET /search/users?q=              - Users by name, email or bio
- GET /search/posts?q=              - Posts by caption or hashtag
- GET /search/hashtags?q=           - Hashtags with post counts
- GET /search/trending-hashtags     - Most used hashtags of the last day
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from zord.api.deps import get_current_user
from zord.db.database import get_db
from zord.models.user import User
from zord.schemas.post import HashtagListResponse, PostListResponse
from zord.schemas.user import UserListResponse
from zord.services.search_service import SearchService

router = APIRouter(prefix="/search", tags=["Search"])


def get_search_service(db: AsyncSession = Depends(get_db)) -> SearchService:
    """Dependency that provides SearchService instance."""
    return SearchService(db)


@router.get("/users", response_model=UserListResponse)
async def search_users(
    q: str = Query("", max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: SearchService = Depends(get_search_service),
):
    return await service.search_users(current_user.id, q, page=page, limit=limit)


@router.get("/posts", response_model=PostListResponse)
async def search_posts(
    q: str = Query("", max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: SearchService = Depends(get_search_service),
):
    """Matches go through the same visibility rules as the feed."""
    return await service.search_posts(current_user.id, q, page=page, limit=limit)


@router.get("/hashtags", response_model=HashtagListResponse)
async def search_hashtags(
    q: str = Query("", max_length=100),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: SearchService = Depends(get_search_service),
):
    return await service.search_hashtags(q, limit=limit)


@router.get("/trending-hashtags", response_model=HashtagListResponse)
async def trending_hashtags(
    limit: int = Query(20, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: SearchService = Depends(get_search_service),
):
    return await service.trending_hashtags(limit=limit)
