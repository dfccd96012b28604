import uuid
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.admin.models import AdminUser

class AdminRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, *, username: str, password_hash: str, email: str) -> AdminUser:
        obj = AdminUser(username=username, password_hash=password_hash, email=email)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, user_id: uuid.UUID) -> AdminUser | None:
        res = await self.session.execute(select(AdminUser).where(AdminUser.id == user_id))
        return res.scalar_one_or_none()

    async def get_by_username(self, username: str) -> AdminUser | None:
        res = await self.session.execute(select(AdminUser).where(AdminUser.username == username))
        return res.scalar_one_or_none()

    async def count(self) -> int:
        res = await self.session.execute(select(func.count(AdminUser.id)))
        return res.scalar_one()

    async def get_by_email(self, email: str) -> AdminUser | None:
        q = select(AdminUser).where(func.lower(AdminUser.email) == email.strip().lower()).limit(1)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()
