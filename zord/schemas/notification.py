from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from zord.schemas.user import UserSummary


class NotificationCreate(BaseModel):
    """Manual notification (client tooling and testing)."""

    receiver_id: UUID
    type: str = Field(..., min_length=1, max_length=50)
    message: str = Field(..., min_length=1, max_length=500)
    post_id: Optional[UUID] = None


class NotificationResponse(BaseModel):
    id: UUID
    type: str
    message: str
    seen: bool
    sender: UserSummary
    post_id: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    total: int
    total_pages: int
    current_page: int
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllSeenResponse(BaseModel):
    message: str
    updated: int
