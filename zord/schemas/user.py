from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


# ============================================================
# Request Schemas
# ============================================================

class ProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    bio: Optional[str] = Field(None, max_length=200)
    avatar: Optional[str] = Field(None, max_length=500)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: Optional[str]) -> Optional[str]:
        """Trim whitespace and ensure name is not empty when provided."""
        if value is None:
            return None
        normalized = " ".join(value.split())
        if not normalized:
            raise ValueError("Name cannot be empty")
        return normalized


# ============================================================
# Response Schemas
# ============================================================

class UserSummary(BaseModel):
    """Public card for a user, embedded in posts, comments and notifications."""

    id: UUID
    name: str
    avatar: str = ""
    role: Optional[str] = None
    college_id: Optional[str] = None

    class Config:
        from_attributes = True


class UserProfileResponse(UserSummary):
    """Public profile with follower-graph counts."""

    college_name: str
    bio: str = ""
    created_at: datetime
    followers_count: int = 0
    following_count: int = 0
    is_following: bool = False


class UserPublic(UserSummary):
    """Search / directory row."""

    bio: str = ""
    college_name: Optional[str] = None


class UserListResponse(BaseModel):
    users: List[UserPublic]
    total: int
    total_pages: int
    current_page: int


class FollowToggleResponse(BaseModel):
    message: str
    is_following: bool
