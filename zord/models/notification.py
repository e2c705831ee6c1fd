import enum

from sqlalchemy import Column, String, Boolean, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from .base import BaseModel


class NotificationType(str, enum.Enum):
    """Known notification kinds. The column accepts any short string."""
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"


class Notification(BaseModel):
    __tablename__ = "notifications"

    sender_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    post_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=True, index=True)
    message = Column(Text, nullable=False)
    seen = Column(Boolean, default=False, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id], lazy="joined")
    receiver = relationship("User", foreign_keys=[receiver_id])
    post = relationship("Post", lazy="joined")
