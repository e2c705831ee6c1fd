from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from zord.models import MediaType, Post, Visibility
from zord.schemas.user import UserSummary


# ============================================================
# Request Schemas (What client sends)
# ============================================================

class PostCreate(BaseModel):
    """
    Schema for creating a post.

    Media is uploaded beforehand; the client sends the resulting URL
    and provider public id.
    """

    caption: Optional[str] = Field(None, max_length=2000)
    media_url: str = Field(..., min_length=1)
    media_type: MediaType
    media_public_id: str = Field(..., min_length=1, max_length=255)
    visibility: Visibility = Visibility.EVERYONE

    @field_validator("caption")
    @classmethod
    def normalize_caption(cls, value: Optional[str]) -> Optional[str]:
        """Trim caption; treat empty strings as None."""
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    class Config:
        json_schema_extra = {
            "example": {
                "caption": "Fest night! #techfest #iitd",
                "media_url": "https://res.cloudinary.com/demo/image/upload/v1/zord/abc.jpg",
                "media_type": "image",
                "media_public_id": "zord/abc",
                "visibility": "collegeOnly",
            }
        }


class PostUpdate(BaseModel):
    """Schema for updating caption and/or visibility."""

    caption: Optional[str] = Field(None, max_length=2000)
    visibility: Optional[Visibility] = None

    @field_validator("caption")
    @classmethod
    def normalize_caption(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip()


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=500)

    @field_validator("content")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Comment cannot be empty")
        return normalized


# ============================================================
# Response Schemas (What server sends back)
# ============================================================

class PostResponse(BaseModel):
    """Post as seen by one viewer."""

    id: UUID
    user: UserSummary
    caption: Optional[str] = None
    media_url: str
    media_type: MediaType
    visibility: Visibility
    hashtags: List[str] = Field(default_factory=list)
    likes_count: int = 0
    comments_count: int = 0
    is_liked: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_post(cls, post: Post, is_liked: bool = False) -> "PostResponse":
        return cls(
            id=post.id,
            user=UserSummary.model_validate(post.owner),
            caption=post.caption,
            media_url=post.media_url,
            media_type=post.media_type,
            visibility=post.visibility,
            hashtags=post.hashtag_list,
            likes_count=post.likes_count or 0,
            comments_count=post.comments_count or 0,
            is_liked=is_liked,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )


class PostListResponse(BaseModel):
    posts: List[PostResponse]
    total: int
    total_pages: int
    current_page: int
    query: Optional[str] = None


class LikeToggleResponse(BaseModel):
    message: str
    is_liked: bool
    likes_count: int


class CommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    user: UserSummary = Field(validation_alias="author")
    content: str
    created_at: datetime

    class Config:
        from_attributes = True


class CommentListResponse(BaseModel):
    comments: List[CommentResponse]
    total: int
    total_pages: int
    current_page: int


class LikeListResponse(BaseModel):
    likes: List[UserSummary]
    total: int
    total_pages: int
    current_page: int


class HashtagCount(BaseModel):
    hashtag: str
    count: int


class HashtagListResponse(BaseModel):
    hashtags: List[HashtagCount]
    query: Optional[str] = None
