from fastapi import HTTPException, Depends, status
from starlette.requests import HTTPConnection
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
import logging

from zord.db.database import get_db
from zord.models import User
from zord.services.auth_service import AuthService
from zord.services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI
security = HTTPBearer()

# =====================================================
# Get Current user
# =====================================================
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency that validates JWT token and returns current user.

    Raises:
        HTTPException 401: If token is invalid or missing
    """
    token = credentials.credentials

    auth_service = AuthService(db)

    try:
        user = await auth_service.get_current_user(token)
        return user
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"}
        )


# =====================================================
# Realtime Registry
# =====================================================
def get_connection_manager(connection: HTTPConnection) -> ConnectionManager:
    """The process-wide ConnectionManager created at startup (HTTP and WebSocket)."""
    return connection.app.state.connection_manager


# =====================================================
# WebSocket Authentication
# =====================================================
async def get_current_user_ws(token: Optional[str], db: AsyncSession) -> Optional[User]:
    """
    Authenticate user from a JWT token for WebSocket connections.

    Unlike HTTP dependencies, WebSocket auth must be done manually
    since we can't use the standard Depends() pattern.

    Args:
        token: JWT access token
        db: Session injected into the WebSocket route

    Returns:
        User if valid, None if invalid
    """
    if not token:
        return None
    try:
        return await AuthService(db).get_current_user(token)
    except ValueError as e:
        logger.warning(f"WebSocket auth failed: {e}")
        return None
