"""
Admin Endpoints

Every route requires an admin account; other callers get 403.

Endpoints:
----------
- GET    /admin/users               - All accounts (?role, ?college, ?search) with counts per role
- PUT    /admin/users/{id}/status   - Activate or deactivate an account
- DELETE /admin/users/{id}          - Delete an account and everything it owns
- GET    /admin/posts               - All posts (?user_id, ?visibility) with counts per tier
- DELETE /admin/posts/{id}          - Delete any post
- GET    /admin/stats               - Platform statistics (?college for one college's membership)
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from zord.api.deps import get_connection_manager, get_current_user
from zord.db.database import get_db
from zord.models import User, UserRole, Visibility
from zord.schemas.admin import (
    AdminPostListResponse,
    AdminUserListResponse,
    AdminUserResponse,
    PlatformStats,
    StatusUpdate,
    StatusUpdateResponse,
)
from zord.schemas.auth import MessageResponse
from zord.services.admin_service import AdminService
from zord.services.websocket_manager import ConnectionManager

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_admin_service(
    db: AsyncSession = Depends(get_db),
    connections: ConnectionManager = Depends(get_connection_manager),
) -> AdminService:
    """Dependency that provides AdminService instance."""
    return AdminService(db, connections)


# ============================================================
# Accounts
# ============================================================
@router.get("/users", response_model=AdminUserListResponse, summary="List all accounts")
async def list_users(
    role: Optional[UserRole] = Query(None),
    college: Optional[str] = Query(None, description="College id"),
    search: Optional[str] = Query(None, description="Name, email or college name"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: AdminService = Depends(get_admin_service),
):
    return await service.list_users(
        current_user, role=role, college_id=college, search=search, page=page, limit=limit
    )


@router.put("/users/{user_id}/status", response_model=StatusUpdateResponse, summary="Activate or deactivate")
async def set_user_status(
    user_id: UUID,
    data: StatusUpdate,
    current_user: User = Depends(get_current_user),
    service: AdminService = Depends(get_admin_service),
):
    """Admins cannot change their own status."""
    user = await service.set_status(current_user, user_id, data.is_active)
    return StatusUpdateResponse(
        message=f"User {'activated' if user.is_active else 'deactivated'} successfully",
        user=AdminUserResponse.model_validate(user),
    )


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete an account")
async def delete_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AdminService = Depends(get_admin_service),
):
    await service.delete_user(current_user, user_id)
    return MessageResponse(message="User and all associated data deleted successfully")


# ============================================================
# Posts
# ============================================================
@router.get("/posts", response_model=AdminPostListResponse, summary="List all posts")
async def list_posts(
    user_id: Optional[UUID] = Query(None),
    visibility: Optional[Visibility] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: AdminService = Depends(get_admin_service),
):
    return await service.list_posts(
        current_user, user_id=user_id, visibility=visibility, page=page, limit=limit
    )


@router.delete("/posts/{post_id}", response_model=MessageResponse, summary="Delete any post")
async def delete_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    service: AdminService = Depends(get_admin_service),
):
    await service.delete_post(current_user, post_id)
    return MessageResponse(message="Post deleted successfully")


# ============================================================
# Statistics
# ============================================================
@router.get("/stats", response_model=PlatformStats, summary="Platform statistics")
async def get_stats(
    college: Optional[str] = Query(None, description="College id"),
    current_user: User = Depends(get_current_user),
    service: AdminService = Depends(get_admin_service),
):
    return await service.get_stats(current_user, college_id=college)
