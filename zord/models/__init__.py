from zord.models.base import BaseModel
from zord.models.user import User, UserRole
from zord.models.post import Post, PostHashtag, Visibility, MediaType
from zord.models.interaction import Like, Comment, Follow
from zord.models.notification import Notification, NotificationType

__all__ = [
    "BaseModel",
    "User",
    "UserRole",
    "Post",
    "PostHashtag",
    "Visibility",
    "MediaType",
    "Like",
    "Comment",
    "Follow",
    "Notification",
    "NotificationType",
]
