"""
Security utility functions: password hashing, admin JWTs and share tokens.
"""
import re
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from schoolshare.config import get_settings
from schoolshare.schemas.user import TokenPayload

settings = get_settings()

# Password hashing context (admin accounts and share passwords)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# token_urlsafe alphabet
_SHARE_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password string
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a bcrypt hash (constant-time comparison).

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hashed password to compare against

    Returns:
        True if password matches
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # malformed / unknown hash format
        return False


def create_access_token(
    user_id: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token for an admin user.

    Args:
        user_id: User ID to encode in the token
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    to_encode = {
        "sub": str(user_id),  # JWT subject must be a string
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> Optional[TokenPayload]:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token string

    Returns:
        TokenPayload if valid, None if invalid
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        user_id = payload.get("sub")
        exp = payload.get("exp")
        if user_id is None or exp is None:
            return None
        return TokenPayload(
            sub=int(user_id),
            exp=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
    except (JWTError, ValueError, TypeError):
        return None


def generate_share_token(nbytes: Optional[int] = None) -> str:
    """
    Generate an unguessable share token.

    Args:
        nbytes: Random bytes (default from settings, 32 = 256 bits)

    Returns:
        URL-safe token string
    """
    return secrets.token_urlsafe(nbytes or settings.share_token_bytes)


def is_well_formed_share_token(token: str) -> bool:
    """Cheap format check run before touching the database."""
    return bool(token) and _SHARE_TOKEN_RE.match(token) is not None
