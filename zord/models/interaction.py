"""
Interaction Models

Records of one user acting on a post or on another user:
- Like: one per (post, user)
- Comment: text attached to a post
- Follow: directed edge in the follower graph
"""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from .base import BaseModel


class Like(BaseModel):
    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_likes_post_user"),
    )

    post_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    user = relationship("User", lazy="joined")


class Comment(BaseModel):
    __tablename__ = "comments"

    post_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(String(500), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    author = relationship("User", lazy="joined")


class Follow(BaseModel):
    __tablename__ = "follows"
    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
        CheckConstraint("follower_id <> following_id", name="ck_follows_not_self"),
    )

    follower_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    following_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    follower = relationship("User", foreign_keys=[follower_id], lazy="joined")
    following = relationship("User", foreign_keys=[following_id], lazy="joined")
