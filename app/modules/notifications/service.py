import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from app.core.errors import NotFound
from app.modules.notifications.models import Notification

class NotificationsService:
    def __init__(self, s: AsyncSession): self.s = s

    async def create(self, *, type: str, title: str, message: str, patient_id: uuid.UUID | None = None) -> Notification:
        # caller commits; notifications ride along with the write that caused them
        n = Notification(type=type, title=title, message=message, patient_id=patient_id)
        self.s.add(n); await self.s.flush(); return n

    async def list(self, *, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        q = select(Notification)
        if unread_only:
            q = q.where(Notification.is_read.is_(False))
        res = await self.s.execute(q.order_by(Notification.created_at.desc()).limit(limit))
        return list(res.scalars().all())

    async def unread_count(self) -> int:
        res = await self.s.execute(select(func.count(Notification.id)).where(Notification.is_read.is_(False)))
        return res.scalar_one()

    async def mark_read(self, notification_id: uuid.UUID) -> Notification:
        res = await self.s.execute(select(Notification).where(Notification.id == notification_id))
        n = res.scalar_one_or_none()
        if not n: raise NotFound("Notification not found")
        n.is_read = True
        await self.s.commit()
        return n
