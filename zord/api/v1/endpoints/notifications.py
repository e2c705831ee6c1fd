"""
Notification Endpoints

Endpoints:
----------
- GET    /notifications                    - List the current user's notifications
- POST   /notifications                    - Create one manually
- GET    /notifications/unread-count       - Count unseen notifications
- PUT    /notifications/mark-all-seen      - Mark all as seen
- PUT    /notifications/{id}/seen          - Mark one as seen
- DELETE /notifications/{id}               - Delete one
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from zord.db.database import get_db
from zord.api.deps import get_connection_manager, get_current_user
from zord.models.user import User
from zord.schemas.auth import MessageResponse
from zord.schemas.notification import (
    MarkAllSeenResponse,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from zord.services.notification_service import NotificationService
from zord.services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(
    db: AsyncSession = Depends(get_db),
    connections: ConnectionManager = Depends(get_connection_manager),
) -> NotificationService:
    """Dependency that provides NotificationService instance."""
    return NotificationService(db, connections)


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications for the current user",
)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.list_notifications(
        current_user.id, page=page, limit=limit, unread_only=unread_only
    )


@router.post(
    "",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a notification",
)
async def create_notification(
    data: NotificationCreate,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """The current user is the sender; the receiver is pushed in realtime."""
    return await service.create_manual(
        sender=current_user,
        receiver_id=data.receiver_id,
        notification_type=data.type,
        message=data.message,
        post_id=data.post_id,
    )


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Get count of unseen notifications",
)
async def unread_count(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return UnreadCountResponse(unread_count=await service.unread_count(current_user.id))


@router.put(
    "/mark-all-seen",
    response_model=MarkAllSeenResponse,
    summary="Mark all notifications as seen",
)
async def mark_all_seen(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    updated = await service.mark_all_seen(current_user.id)
    return MarkAllSeenResponse(message="All notifications marked as seen", updated=updated)


@router.put(
    "/{notification_id}/seen",
    response_model=NotificationResponse,
    summary="Mark a notification as seen",
)
async def mark_seen(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return await service.mark_seen(notification_id, current_user.id)


@router.delete(
    "/{notification_id}",
    response_model=MessageResponse,
    summary="Delete a notification",
)
async def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    await service.delete_notification(notification_id, current_user.id)
    return MessageResponse(message="Notification deleted successfully")
