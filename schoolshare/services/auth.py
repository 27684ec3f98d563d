"""
Authentication service for admin accounts.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from schoolshare.exceptions import InvalidRequest
from schoolshare.models.user import AdminUser
from schoolshare.repositories import AdminUserRepository
from schoolshare.schemas.user import AdminCreate, Token
from schoolshare.utils.logger import log_info, log_warning
from schoolshare.utils.security import create_access_token, hash_password, verify_password


class AuthService:
    """
    Service for handling admin authentication.
    Provides methods for provisioning, login, and lookup.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.users = AdminUserRepository(db)

    async def create_admin(self, data: AdminCreate) -> AdminUser:
        """
        Create an admin account.

        Args:
            data: Admin provisioning data

        Returns:
            Created AdminUser

        Raises:
            InvalidRequest: If email or username already exists
        """
        if await self.users.get_by_email(data.email):
            log_warning("Admin creation failed", event="auth", reason="email_exists")
            raise InvalidRequest("Email already registered")
        if await self.users.get_by_username(data.username):
            log_warning("Admin creation failed", event="auth", reason="username_exists")
            raise InvalidRequest("Username already taken")

        user = await self.users.create(AdminUser(
            email=data.email,
            username=data.username,
            hashed_password=hash_password(data.password),
        ))
        log_info("Admin created", event="auth", user_id=user.id)
        return user

    async def ensure_admin(self, data: AdminCreate) -> Optional[AdminUser]:
        """Create the admin unless the email is already registered."""
        if await self.users.get_by_email(data.email):
            return None
        return await self.create_admin(data)

    async def authenticate(self, email: str, password: str) -> Optional[AdminUser]:
        """
        Authenticate an admin with email and password.

        Returns:
            AdminUser if authentication successful, None otherwise
        """
        user = await self.users.get_by_email(email)

        if not user:
            log_warning("Login failed", event="auth", reason="user_not_found")
            return None
        if not user.is_active:
            log_warning("Login failed", event="auth", user_id=user.id, reason="inactive")
            return None
        if not verify_password(password, user.hashed_password):
            log_warning("Login failed", event="auth", user_id=user.id, reason="invalid_password")
            return None
        log_info("Login", event="auth", user_id=user.id)
        return user

    async def login(self, email: str, password: str) -> Optional[Token]:
        user = await self.authenticate(email, password)
        if not user:
            return None
        return Token(access_token=create_access_token(user.id))

    async def get_user_by_id(self, user_id: int) -> Optional[AdminUser]:
        return await self.users.get(user_id)
