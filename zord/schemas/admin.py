from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from zord.models import UserRole
from zord.schemas.post import PostResponse


# ============================================================
# Request Schemas
# ============================================================

class RoleUpdate(BaseModel):
    role: UserRole


class StatusUpdate(BaseModel):
    """Activate or deactivate an account."""

    is_active: bool = Field(..., strict=True)


# ============================================================
# Response Schemas
# ============================================================

class AdminUserResponse(BaseModel):
    """Full account view, including contact and status fields."""

    id: UUID
    name: str
    email: str
    role: UserRole
    college_id: str
    college_name: str
    avatar: str = ""
    bio: str = ""
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AdminUserListResponse(BaseModel):
    users: List[AdminUserResponse]
    total: int
    total_pages: int
    current_page: int
    stats: Dict[str, int] = Field(default_factory=dict, description="Accounts per role")


class AdminPostListResponse(BaseModel):
    posts: List[PostResponse]
    total: int
    total_pages: int
    current_page: int
    stats: Dict[str, int] = Field(default_factory=dict, description="Posts per visibility tier")


class RoleUpdateResponse(BaseModel):
    message: str
    user: AdminUserResponse


class StatusUpdateResponse(BaseModel):
    message: str
    user: AdminUserResponse


class PlatformOverview(BaseModel):
    total_users: int
    active_users: int
    total_posts: int
    total_comments: int


class DailyActivity(BaseModel):
    date: str
    posts: int


class CollegeCount(BaseModel):
    college_name: str
    user_count: int


class CollegeMembership(BaseModel):
    """Active accounts of one college, as seen by the visibility rules."""

    college_id: str
    members: int
    students: int


class PlatformStats(BaseModel):
    overview: PlatformOverview
    users_by_role: Dict[str, int]
    posts_by_visibility: Dict[str, int]
    recent_activity: List[DailyActivity]
    top_colleges: List[CollegeCount]
    college: Optional[CollegeMembership] = None
