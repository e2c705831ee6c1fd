"""
Notification Service

Persists notifications for in-app viewing and pushes them to the
receiver's live WebSocket connections.

Flow for a like/comment/follow:
1. The action stages its own changes on the session (no commit)
2. `notify` adds the Notification row and commits both together
3. A realtime push is scheduled and not awaited

Acting on yourself never creates a notification.
"""

import logging
import math
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from zord.core.exceptions import AccessDeniedError, NotFoundError, ValidationFailedError
from zord.models import Notification, User
from zord.repositories.notification_repo import NotificationRepository
from zord.repositories.user_repo import UserRepository
from zord.services.websocket_manager import ConnectionManager, notification_event

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for notification persistence, delivery and read state."""

    def __init__(self, db: AsyncSession, connections: ConnectionManager):
        self.db = db
        self.connections = connections
        self.notification_repo = NotificationRepository(db)
        self.user_repo = UserRepository(db)

    # ============================================================
    # Create + Dispatch
    # ============================================================

    async def notify(
        self,
        receiver_id: UUID,
        sender: User,
        notification_type: str,
        message: str,
        post_id: Optional[UUID] = None,
    ) -> Optional[Notification]:
        """
        Persist a notification and push it to the receiver.

        Commits the session, so changes the caller staged are committed
        with the notification. A persistence error propagates; push
        errors never do.

        Returns:
            The notification, or None when sender and receiver are the same
        """
        sender_id = sender.id
        if sender_id == receiver_id:
            logger.debug(f"Suppressed self-notification ({notification_type}) for user {sender_id}")
            return None

        notification = await self.notification_repo.create(
            sender_id=sender_id,
            receiver_id=receiver_id,
            type=notification_type,
            message=message,
            post_id=post_id,
            seen=False,
        )

        logger.info(
            f"Notification {notification.id} ({notification_type}) "
            f"from {sender_id} to {receiver_id}"
        )

        self.connections.push(
            receiver_id,
            notification_event(
                notification_type=notification_type,
                message=message,
                sender_id=sender_id,
                sender_name=sender.name,
                sender_avatar=sender.avatar or "",
                post_id=post_id,
            ),
        )
        return notification

    # ============================================================
    # Read State
    # ============================================================

    async def _get_owned(self, notification_id: UUID, requester_id: UUID) -> Notification:
        notification = await self.notification_repo.get_by_id(notification_id)
        if notification is None or not notification.is_active:
            raise NotFoundError("Notification not found")
        if notification.receiver_id != requester_id:
            raise AccessDeniedError("Access denied")
        return notification

    async def mark_seen(self, notification_id: UUID, requester_id: UUID) -> Notification:
        """
        Mark one notification as seen. Marking it again is a no-op.

        Raises:
            NotFoundError: If the notification does not exist
            AccessDeniedError: If the requester is not the receiver
        """
        notification = await self._get_owned(notification_id, requester_id)
        if not notification.seen:
            notification.seen = True
            await self.db.commit()
            await self.db.refresh(notification)
        return notification

    async def mark_all_seen(self, user_id: UUID) -> int:
        """Mark the user's own unseen notifications as seen."""
        updated = await self.notification_repo.mark_all_seen(user_id)
        logger.info(f"Marked {updated} notifications seen for user {user_id}")
        return updated

    async def unread_count(self, user_id: UUID) -> int:
        return await self.notification_repo.count_unseen(user_id)

    # ============================================================
    # Listing
    # ============================================================

    async def list_notifications(
        self,
        user_id: UUID,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
    ) -> Dict[str, Any]:
        """Paginated notifications of one receiver plus the unread count."""
        notifications, total = await self.notification_repo.list_for_receiver(
            user_id, unread_only=unread_only, page=page, limit=limit
        )
        return {
            "notifications": notifications,
            "total": total,
            "total_pages": math.ceil(total / limit) if limit else 0,
            "current_page": page,
            "unread_count": await self.notification_repo.count_unseen(user_id),
        }

    # ============================================================
    # Deletion
    # ============================================================

    async def delete_notification(self, notification_id: UUID, requester_id: UUID) -> None:
        """
        Delete one notification on behalf of its receiver.

        Raises:
            NotFoundError: If the notification does not exist
            AccessDeniedError: If the requester is not the receiver
        """
        notification = await self._get_owned(notification_id, requester_id)
        await self.db.delete(notification)
        await self.db.commit()

    async def delete_for_post(self, post_id: UUID) -> int:
        """
        Stage deletion of every notification referencing a post.

        Runs inside the post deletion's transaction; does not commit.
        """
        deleted = await self.notification_repo.delete_for_post(post_id)
        logger.info(f"Removing {deleted} notifications for post {post_id}")
        return deleted

    # ============================================================
    # Manual Create
    # ============================================================

    async def create_manual(
        self,
        sender: User,
        receiver_id: UUID,
        notification_type: str,
        message: str,
        post_id: Optional[UUID] = None,
    ) -> Notification:
        """
        Create a notification directly (client tooling and testing).

        Raises:
            NotFoundError: If the receiver does not exist
            ValidationFailedError: If sender and receiver are the same
        """
        receiver = await self.user_repo.find_user(receiver_id)
        if receiver is None or not receiver.is_active:
            raise NotFoundError("Receiver not found")

        notification = await self.notify(
            receiver_id=receiver.id,
            sender=sender,
            notification_type=notification_type,
            message=message,
            post_id=post_id,
        )
        if notification is None:
            raise ValidationFailedError("You cannot send a notification to yourself")
        return notification
