import uuid
from datetime import datetime
from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.reminders.models import ReminderConfig, ReminderLog

class ReminderConfigRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> ReminderConfig:
        obj = ReminderConfig(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, config_id: uuid.UUID) -> ReminderConfig | None:
        res = await self.session.execute(select(ReminderConfig).where(ReminderConfig.id == config_id))
        return res.scalar_one_or_none()

    async def get_by_type(self, reminder_type: str) -> ReminderConfig | None:
        res = await self.session.execute(select(ReminderConfig).where(ReminderConfig.reminder_type == reminder_type))
        return res.scalar_one_or_none()

    async def list(self) -> Sequence[ReminderConfig]:
        res = await self.session.execute(select(ReminderConfig).order_by(ReminderConfig.hours_before.asc()))
        return res.scalars().all()

    async def enabled(self) -> Sequence[ReminderConfig]:
        """Enabled configs, longest lead time first."""
        q = select(ReminderConfig).where(ReminderConfig.is_enabled.is_(True)).order_by(ReminderConfig.hours_before.desc())
        res = await self.session.execute(q)
        return res.scalars().all()


class ReminderLogRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, **data) -> ReminderLog:
        obj = ReminderLog(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def counts_since(self, since: datetime) -> Sequence[tuple[str, str, int]]:
        q = (
            select(ReminderLog.reminder_type, ReminderLog.status, func.count(ReminderLog.id))
            .where(ReminderLog.sent_at >= since)
            .group_by(ReminderLog.reminder_type, ReminderLog.status)
        )
        res = await self.session.execute(q)
        return [tuple(r) for r in res.all()]

    async def count_since(self, since: datetime) -> int:
        res = await self.session.execute(select(func.count(ReminderLog.id)).where(ReminderLog.sent_at >= since))
        return res.scalar_one()

    async def for_appointment(self, appointment_id: uuid.UUID) -> Sequence[ReminderLog]:
        q = select(ReminderLog).where(ReminderLog.appointment_id == appointment_id).order_by(ReminderLog.sent_at.asc())
        res = await self.session.execute(q)
        return res.scalars().all()
