import uuid
from datetime import date
from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.treatments.models import Treatment

class TreatmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, obj: Treatment) -> Treatment:
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, treatment_id: uuid.UUID) -> Treatment | None:
        res = await self.session.execute(select(Treatment).where(Treatment.id == treatment_id))
        return res.scalar_one_or_none()

    async def list(
        self, *,
        start_date: date | None = None,
        end_date: date | None = None,
        payment_status: str | None = None,
        patient_id: uuid.UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[Sequence[Treatment], int]:
        cond = []
        if start_date:
            cond.append(Treatment.treatment_date >= start_date)
        if end_date:
            cond.append(Treatment.treatment_date <= end_date)
        if payment_status:
            cond.append(Treatment.payment_status == payment_status)
        if patient_id:
            cond.append(Treatment.patient_id == patient_id)
        total = (await self.session.execute(select(func.count(Treatment.id)).where(*cond))).scalar_one()
        q = select(Treatment).where(*cond).order_by(Treatment.treatment_date.desc(), Treatment.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all(), total

    async def delete(self, obj: Treatment) -> None:
        await self.session.delete(obj)
        await self.session.flush()
