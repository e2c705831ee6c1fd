from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from zord.models import User, UserRole
from zord.repositories.user_repo import UserRepository
from zord.schemas.auth import UserRegister, UserLogin, TokenResponse, UserResponse
from zord.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    verify_refresh_token,
    verify_token,
)

from zord.core.config import settings


def _parse_subject(subject: Optional[str]) -> Optional[UUID]:
    """Token subjects are user ids; anything else is treated as invalid."""
    try:
        return UUID(str(subject))
    except (TypeError, ValueError):
        return None


class AuthService:
    """
    Service class for authentication operations.

    """
    def __init__(self, db: AsyncSession):
        """
        Initialize with database session.

        Args:
            db: AsyncSession instance
        """
        self.db = db
        self.user_repo = UserRepository(db)

    # ============================================================
    # User Registration
    # ============================================================
    async def register(self, user_data: UserRegister) -> TokenResponse:
        """
        Register a new user.

        Args:
            user_data: Validated registration data

        Returns:
            TokenResponse with tokens and user info

        Raises:
            ValueError: If email already exists
        """
        existing_user = await self.user_repo.get_by_email(user_data.email)

        if existing_user:
            raise ValueError("A user with this email already exists")

        user = await self.user_repo.create_user(
            name=user_data.name,
            email=user_data.email,
            password_hash=get_password_hash(user_data.password),
            college_id=user_data.college_id,
            college_name=user_data.college_name,
            role=UserRole(user_data.role),
        )

        return self._create_token_response(user)

    # ============================================================
    # User Login
    # ============================================================
    async def login(self, login_data: UserLogin) -> TokenResponse:
        """
        Authenticate user and return tokens.

        Raises:
            ValueError: If credentials are invalid
        """
        user = await self.user_repo.get_by_email(login_data.email)

        # Check if user exists and password is correct
        if not user or not verify_password(login_data.password, user.password_hash):
            raise ValueError("Invalid email or password")

        if not user.is_active:
            raise ValueError("This account has been deactivated")

        # Update last login time
        user.last_login = datetime.now(timezone.utc)
        await self.db.commit()

        return self._create_token_response(user)

    # ============================================================
    # Token Refresh
    # ============================================================
    async def refresh_token(self, refresh_token: str) -> dict:
        """
        Create new access token from refresh token.

        Raises:
            ValueError: If refresh token is invalid
        """
        user_id = verify_refresh_token(refresh_token)

        if not user_id:
            raise ValueError("Invalid or expired refresh token")

        # Verify user still exists and is active
        user = await self.user_repo.find_user(_parse_subject(user_id)) if user_id else None

        if not user or not user.is_active:
            raise ValueError("User not found or inactive")

        return {
            "access_token": create_access_token(subject=str(user.id)),
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        }

    # ============================================================
    # Get Current User
    # ============================================================
    async def get_current_user(self, token: str) -> User:
        """
        Get user from access token.

        Raises:
            ValueError: If token is invalid
        """
        payload = verify_token(token)

        if not payload:
            raise ValueError("Invalid or expired token")

        user_id = _parse_subject(payload.get("sub"))
        user = await self.user_repo.find_user(user_id) if user_id else None

        if not user:
            raise ValueError("User not found")

        if not user.is_active:
            raise ValueError("User account is deactivated")

        return user

    # ============================================================
    # Helper Methods
    # ============================================================
    def _create_token_response(self, user: User) -> TokenResponse:
        """
        Create token response for a user.
        """
        return TokenResponse(
            access_token=create_access_token(subject=str(user.id)),
            refresh_token=create_refresh_token(subject=str(user.id)),
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserResponse.model_validate(user),
        )
