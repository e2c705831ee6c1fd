"""
Post Models

- Post: a media post with a visibility tier and denormalized counters
- PostHashtag: one row per hashtag extracted from a post caption
"""

import enum
import re
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from .base import BaseModel

HASHTAG_PATTERN = re.compile(r"#(\w+)")


class Visibility(str, enum.Enum):
    """Who may see a post."""
    EVERYONE = "everyone"
    COLLEGE_ONLY = "collegeOnly"
    STUDENTS_ONLY = "studentsOnly"


class MediaType(str, enum.Enum):
    IMAGE = "image"
    VIDEO = "video"


def extract_hashtags(caption: Optional[str]) -> List[str]:
    """Lower-cased, de-duplicated hashtags in order of first appearance."""
    if not caption:
        return []
    seen = []
    for tag in HASHTAG_PATTERN.findall(caption):
        tag = tag.lower()
        if tag not in seen:
            seen.append(tag)
    return seen


class Post(BaseModel):
    __tablename__ = "posts"
    __table_args__ = (
        CheckConstraint("likes_count >= 0", name="ck_posts_likes_count_non_negative"),
        CheckConstraint("comments_count >= 0", name="ck_posts_comments_count_non_negative"),
    )

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    caption = Column(String(2000), nullable=True)
    media_url = Column(Text, nullable=False)
    media_type = Column(
        Enum(MediaType, name="media_type", values_callable=lambda x: [e.value for e in x]),
        nullable=False
    )
    media_public_id = Column(String(255), nullable=False)
    visibility = Column(
        Enum(Visibility, name="post_visibility", values_callable=lambda x: [e.value for e in x]),
        default=Visibility.EVERYONE,
        nullable=False,
        index=True
    )
    likes_count = Column(Integer, default=0, nullable=False)
    comments_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="posts", lazy="joined")
    hashtags = relationship(
        "PostHashtag",
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def hashtag_list(self) -> List[str]:
        return [h.tag for h in self.hashtags]


class PostHashtag(BaseModel):
    __tablename__ = "post_hashtags"
    __table_args__ = (
        UniqueConstraint("post_id", "tag", name="uq_post_hashtags_post_tag"),
    )

    post_id = Column(Uuid(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    tag = Column(String(100), nullable=False, index=True)

    post = relationship("Post", back_populates="hashtags")
