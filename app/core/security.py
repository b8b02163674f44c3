from datetime import datetime, timedelta, timezone
from typing import Optional, Any
import uuid

from jose import JWTError, jwt

from app.config import settings


# Tokens are issued by the external identity provider. This service only
# verifies them; create_access_token exists for local tooling and tests.

USER_TYPE_PARTNER = "partner"
USER_TYPE_INTERNAL = "internal"


def create_access_token(
    subject: str | uuid.UUID,
    user_type: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Partner or internal user ID
        user_type: "partner" or "internal"
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30))

    to_encode = {
        "sub": str(subject),
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access",
        "user_type": user_type,
    }

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict[str, Any]]:
    """Decode and validate a JWT token. Returns None if invalid."""
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        return None


def verify_access_token(token: str) -> Optional[tuple[str, str]]:
    """
    Verify an access token.

    Returns:
        (subject, user_type) or None if invalid
    """
    payload = decode_token(token)
    if payload is None:
        return None

    if payload.get("type") != "access":
        return None

    subject = payload.get("sub")
    user_type = payload.get("user_type")
    if not subject or user_type not in (USER_TYPE_PARTNER, USER_TYPE_INTERNAL):
        return None

    return subject, user_type
