from zord.repositories.base import BaseRepository
from zord.repositories.user_repo import UserRepository
from zord.repositories.post_repo import PostRepository
from zord.repositories.follow_repo import FollowRepository
from zord.repositories.notification_repo import NotificationRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PostRepository",
    "FollowRepository",
    "NotificationRepository",
]
