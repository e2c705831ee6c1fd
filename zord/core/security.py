from datetime import datetime, timezone, timedelta
from typing import Any, Union, Optional, Dict
import uuid

from jose import JWTError, jwt

# Use bcrypt directly to avoid passlib/bcrypt version conflicts
import bcrypt

from zord.core.config import settings


# =====================================================
# Token Type Constants
# =====================================================
TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


# =====================================================
# Password Hashing
# =====================================================
def get_password_hash(password: str) -> str:
    """
    Hash a plain-text password using bcrypt.
    """
    if not password:
        raise ValueError("Password cannot be empty")
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=12)
    ).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hashed value.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8")
        )
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


# =====================================================
# JWT Creation
# =====================================================
def _create_token(
    subject: Union[str, Any],
    token_type: str,
    expires_delta: timedelta,
) -> str:
    now = datetime.now(timezone.utc)

    to_encode = {
        "exp": now + expires_delta,        # Expiration time
        "sub": str(subject),               # Subject (user ID)
        "type": token_type,                # Token type
        "iat": now,                        # Issued at
        "jti": str(uuid.uuid4())           # Unique token ID
    }

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )


def create_access_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.
    """
    return _create_token(
        subject,
        TOKEN_TYPE_ACCESS,
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT refresh token.
    """
    return _create_token(
        subject,
        TOKEN_TYPE_REFRESH,
        expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


# =====================================================
# Token Verification
# =====================================================
def verify_token(
    token: str,
    token_type: str = TOKEN_TYPE_ACCESS
) -> Optional[Dict[str, Any]]:
    """
    Verify a JWT token and return its payload if valid.
    """
    try:
        # Decode JWT (python-jose rejects expired tokens here)
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None

    # Validate token type
    if payload.get("type") != token_type:
        return None

    return payload


def verify_refresh_token(token: str) -> Optional[str]:
    """
    Verify refresh token and return the subject.
    """
    payload = verify_token(token, TOKEN_TYPE_REFRESH)
    return payload.get("sub") if payload else None
