from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Literal, Optional
from datetime import datetime
from uuid import UUID
import re


# ============================================================
# Request Schemas (What client sends)
# ============================================================

class UserRegister(BaseModel):
    """Schema for user registration request"""

    name: str = Field(
        min_length=2,
        max_length=50,
        description="Display name, 2-50 characters"
    )
    email: EmailStr  # Pydantic validates this is a valid email
    password: str = Field(
        min_length=8,
        max_length=100,
        description="Password must be 8-100 characters"
    )
    college_id: str = Field(min_length=1, max_length=100)
    college_name: str = Field(min_length=1, max_length=200)
    # Admins are appointed, never self-registered
    role: Literal["student", "teacher"] = "student"

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        """
        Validate password meets strength requirements.

        Requirements:
        - At least 8 characters (already checked by min_length)
        - At least one uppercase letter
        - At least one lowercase letter
        - At least one digit
        """
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one digit")
        return v

    @field_validator("name", "college_id", "college_name")
    @classmethod
    def collapse_whitespace(cls, v: str) -> str:
        """Remove extra whitespace"""
        normalized = " ".join(v.split())
        if not normalized:
            raise ValueError("Value cannot be blank")
        return normalized

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Aarav Sharma",
                "email": "aarav@college.edu",
                "password": "SecurePass123",
                "college_id": "IITD",
                "college_name": "IIT Delhi",
                "role": "student"
            }
        }


class UserLogin(BaseModel):
    """Schema for user login request"""

    email: EmailStr
    password: str

    class Config:
        json_schema_extra = {
            "example": {
                "email": "aarav@college.edu",
                "password": "SecurePass123"
            }
        }


class RefreshTokenRequest(BaseModel):
    """Schema for token refresh request"""

    refresh_token: str


# ============================================================
# Response Schemas (What server sends back)
# ============================================================

class MessageResponse(BaseModel):
    """Schema for simple message responses"""
    message: str
    success: bool = True


class UserResponse(BaseModel):
    """Schema for the authenticated user's own record (NO password!)"""

    id: UUID
    name: str
    email: str
    role: str
    college_id: str
    college_name: str
    avatar: str = ""
    bio: str = ""
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True  # Allow creating from ORM model


class TokenResponse(BaseModel):
    """Schema for authentication token response"""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until access token expires
    user: UserResponse


class TokenRefreshResponse(BaseModel):
    """Schema for token refresh response"""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Schema for error responses"""

    detail: str

    class Config:
        json_schema_extra = {
            "example": {
                "detail": "Invalid email or password"
            }
        }
