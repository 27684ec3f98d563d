"""
Authentication dependencies for FastAPI.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.database import get_db
from schoolshare.models.user import AdminUser
from schoolshare.services.auth import AuthService
from schoolshare.utils.security import decode_access_token

logger = logging.getLogger("schoolshare.auth")

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> AdminUser:
    """
    Dependency to get the current authenticated admin.

    Raises:
        HTTPException: If token is missing, invalid, or admin not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "no_token"})
        raise credentials_exception

    token_payload = decode_access_token(credentials.credentials)

    if token_payload is None:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "invalid_or_expired_token"})
        raise credentials_exception

    user = await AuthService(db).get_user_by_id(token_payload.sub)

    if user is None:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "user_not_found", "user_id": token_payload.sub})
        raise credentials_exception

    return user


async def get_current_active_admin(
    current_user: AdminUser = Depends(get_current_admin),
) -> AdminUser:
    """
    Dependency to get the current active admin.

    Raises:
        HTTPException: If the account is inactive
    """
    if not current_user.is_active:
        logger.warning("Inactive admin rejected", extra={"event": "auth", "reason": "inactive", "user_id": current_user.id})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )
    return current_user
