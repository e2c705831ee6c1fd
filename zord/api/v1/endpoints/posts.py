"""
Post Endpoints

Endpoints:
----------
- POST   /posts                       - Create a post
- GET    /posts/{post_id}             - Get a post (visibility enforced)
- PUT    /posts/{post_id}             - Update caption / visibility
- DELETE /posts/{post_id}             - Delete a post and its dependents
- POST   /posts/{post_id}/like        - Like or unlike
- GET    /posts/{post_id}/likes       - Users who liked a post
- POST   /posts/{post_id}/comments    - Comment on a post
- GET    /posts/{post_id}/comments    - List comments
- DELETE /posts/comments/{comment_id} - Delete a comment
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from zord.api.deps import get_connection_manager, get_current_user
from zord.db.database import get_db
from zord.models.user import User
from zord.schemas.auth import MessageResponse
from zord.schemas.post import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    LikeListResponse,
    LikeToggleResponse,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from zord.services.post_service import PostService
from zord.services.websocket_manager import ConnectionManager

router = APIRouter(prefix="/posts", tags=["Posts"])


# ============================================================
# HELPER
# ============================================================

def get_post_service(
    db: AsyncSession = Depends(get_db),
    connections: ConnectionManager = Depends(get_connection_manager),
) -> PostService:
    """Dependency that provides PostService instance."""
    return PostService(db, connections)


# ============================================================
# POSTS
# ============================================================

@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a post",
)
async def create_post(
    data: PostCreate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return await service.create_post(current_user, data)


@router.get("/{post_id}", response_model=PostResponse, summary="Get a post")
async def get_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    """Posts the current user may not see are reported as not found."""
    return await service.get_post(current_user, post_id)


@router.put("/{post_id}", response_model=PostResponse, summary="Update a post")
async def update_post(
    post_id: UUID,
    data: PostUpdate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return await service.update_post(current_user, post_id, data)


@router.delete("/{post_id}", response_model=MessageResponse, summary="Delete a post")
async def delete_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    """
    Delete a post.

    Its likes, comments, hashtags and every notification referencing it
    are removed in the same transaction.
    """
    await service.delete_post(current_user, post_id)
    return MessageResponse(message="Post deleted successfully")


# ============================================================
# LIKES
# ============================================================

@router.post("/{post_id}/like", response_model=LikeToggleResponse, summary="Like or unlike a post")
async def toggle_like(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return await service.toggle_like(current_user, post_id)


@router.get("/{post_id}/likes", response_model=LikeListResponse, summary="List likes")
async def list_likes(
    post_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return await service.list_likes(current_user, post_id, page=page, limit=limit)


# ============================================================
# COMMENTS
# ============================================================

@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a post",
)
async def add_comment(
    post_id: UUID,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return await service.add_comment(current_user, post_id, data.content)


@router.get("/{post_id}/comments", response_model=CommentListResponse, summary="List comments")
async def list_comments(
    post_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    return await service.list_comments(current_user, post_id, page=page, limit=limit)


@router.delete("/comments/{comment_id}", response_model=MessageResponse, summary="Delete a comment")
async def delete_comment(
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    service: PostService = Depends(get_post_service),
):
    await service.delete_comment(current_user, comment_id)
    return MessageResponse(message="Comment deleted successfully")
