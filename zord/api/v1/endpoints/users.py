"""
User Endpoints

Endpoints:
----------
- GET  /users/college/{college_id}  - Members of a college (?role=)
- GET  /users/{user_id}             - Profile
- PUT  /users/{user_id}             - Update profile (self or admin)
- PUT  /users/{user_id}/role        - Change role (admin only)
- GET  /users/{user_id}/posts       - A user's posts the caller may see
- POST /users/{user_id}/follow      - Follow or unfollow
- GET  /users/{user_id}/followers   - Followers
- GET  /users/{user_id}/following   - Following
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from zord.api.deps import get_connection_manager, get_current_user
from zord.core.config import settings
from zord.db.database import get_db
from zord.models.user import User, UserRole
from zord.schemas.admin import AdminUserResponse, RoleUpdate, RoleUpdateResponse
from zord.schemas.post import PostListResponse
from zord.schemas.user import (
    FollowToggleResponse,
    ProfileUpdate,
    UserListResponse,
    UserProfileResponse,
)
from zord.services.admin_service import AdminService
from zord.services.feed_service import FeedService
from zord.services.user_service import UserService
from zord.services.websocket_manager import ConnectionManager

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(
    db: AsyncSession = Depends(get_db),
    connections: ConnectionManager = Depends(get_connection_manager),
) -> UserService:
    """Dependency that provides UserService instance."""
    return UserService(db, connections)


@router.get("/college/{college_id}", response_model=UserListResponse, summary="List college members")
async def list_college_members(
    college_id: str,
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.list_college_members(
        current_user, college_id, role=role, page=page, limit=limit
    )


@router.get("/{user_id}", response_model=UserProfileResponse, summary="Get a profile")
async def get_profile(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.get_profile(current_user, user_id)


@router.put("/{user_id}", response_model=UserProfileResponse, summary="Update a profile")
async def update_profile(
    user_id: UUID,
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.update_profile(current_user, user_id, data)


@router.put("/{user_id}/role", response_model=RoleUpdateResponse, summary="Change a user's role")
async def update_role(
    user_id: UUID,
    data: RoleUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    connections: ConnectionManager = Depends(get_connection_manager),
):
    """Admin only."""
    user = await AdminService(db, connections).update_role(current_user, user_id, data.role)
    return RoleUpdateResponse(
        message="User role updated successfully",
        user=AdminUserResponse.model_validate(user),
    )


@router.get("/{user_id}/posts", response_model=PostListResponse, summary="A user's posts")
async def get_user_posts(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Only the posts the caller is allowed to see are listed."""
    return await FeedService(db).get_user_posts(current_user.id, user_id, page=page, limit=limit)


@router.post("/{user_id}/follow", response_model=FollowToggleResponse, summary="Follow or unfollow")
async def toggle_follow(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    is_following = await service.toggle_follow(current_user, user_id)
    return FollowToggleResponse(
        message="User followed" if is_following else "User unfollowed",
        is_following=is_following,
    )


@router.get("/{user_id}/followers", summary="List followers")
async def list_followers(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.list_followers(user_id, page=page, limit=limit)


@router.get("/{user_id}/following", summary="List followed users")
async def list_following(
    user_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return await service.list_following(user_id, page=page, limit=limit)
