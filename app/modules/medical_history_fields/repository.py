import uuid
from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.medical_history_fields.models import MedicalHistoryField as HistoryField

class MedicalHistoryFieldRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> HistoryField:
        obj = HistoryField(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, field_id: uuid.UUID) -> HistoryField | None:
        res = await self.session.execute(select(HistoryField).where(HistoryField.id == field_id))
        return res.scalar_one_or_none()

    async def find_by_name(self, name: str) -> HistoryField | None:
        q = select(HistoryField).where(func.lower(HistoryField.field_name) == name.strip().lower()).limit(1)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list(self, *, include_inactive: bool = False) -> Sequence[HistoryField]:
        q = select(HistoryField)
        if not include_inactive:
            q = q.where(HistoryField.is_active.is_(True))
        res = await self.session.execute(q.order_by(HistoryField.field_name))
        return res.scalars().all()
