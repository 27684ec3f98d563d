from typing import Optional

from sqlalchemy import select

from schoolshare.models.user import AdminUser
from schoolshare.repositories.base import BaseRepository


class AdminUserRepository(BaseRepository):
    async def get(self, user_id: int) -> Optional[AdminUser]:
        result = await self._execute(select(AdminUser).where(AdminUser.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[AdminUser]:
        result = await self._execute(select(AdminUser).where(AdminUser.email == email))
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> Optional[AdminUser]:
        result = await self._execute(select(AdminUser).where(AdminUser.username == username))
        return result.scalar_one_or_none()

    async def create(self, user: AdminUser) -> AdminUser:
        return await self._add(user)
