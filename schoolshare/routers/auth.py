"""
Authentication router for staff login.
"""
import time

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.database import get_db
from schoolshare.dependencies.auth import get_current_active_admin
from schoolshare.models.user import AdminUser
from schoolshare.schemas.user import AdminLogin, AdminResponse, Token
from schoolshare.services.auth import AuthService
from schoolshare.utils.logger import log_info, log_warning
from schoolshare.utils.prometheus_metrics import admin_login_total, login_duration_seconds

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=Token,
    summary="Login to get access token",
)
async def login(
    login_data: AdminLogin,
    db: AsyncSession = Depends(get_db),
) -> Token:
    """
    Login with email and password to get a JWT access token.

    Returns a JWT token that should be included in the Authorization header
    as `Bearer <token>` for the admin endpoints.
    """
    auth_service = AuthService(db)
    start = time.perf_counter()
    token = await auth_service.login(login_data.email, login_data.password)
    duration = time.perf_counter() - start
    result = "success" if token else "failure"
    login_duration_seconds.labels(result=result).observe(duration)
    admin_login_total.labels(result=result).inc()

    if not token:
        log_warning("Login failed - invalid credentials", event="admin_login")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    log_info("Admin login successful", event="admin_login")
    return token


@router.get(
    "/me",
    response_model=AdminResponse,
    summary="Get current admin profile",
)
async def get_me(
    current_user: AdminUser = Depends(get_current_active_admin),
) -> AdminResponse:
    return AdminResponse.model_validate(current_user)
