import uuid
from datetime import date
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from app.modules.appointments.models import Appointment

class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Appointment:
        obj = Appointment(**data)
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj, ["patient"])
        return obj

    async def get(self, appt_id: uuid.UUID) -> Appointment | None:
        res = await self.session.execute(select(Appointment).where(Appointment.id == appt_id))
        return res.scalar_one_or_none()

    async def list(
        self, *,
        start_date: date | None = None,
        end_date: date | None = None,
        status: str | None = None,
        patient_id: uuid.UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[Sequence[Appointment], int]:
        cond = []
        if start_date:
            cond.append(Appointment.appointment_date >= start_date)
        if end_date:
            cond.append(Appointment.appointment_date <= end_date)
        if status:
            cond.append(Appointment.status == status)
        if patient_id:
            cond.append(Appointment.patient_id == patient_id)
        total = (await self.session.execute(select(func.count(Appointment.id)).where(and_(*cond)))).scalar_one()
        q = (
            select(Appointment)
            .where(and_(*cond))
            .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            .limit(limit)
            .offset(offset)
        )
        res = await self.session.execute(q)
        return res.scalars().all(), total

    async def active_on(self, day: date) -> Sequence[Appointment]:
        """Every non-cancelled appointment on ``day``, in start order."""
        q = select(Appointment).where(
            Appointment.appointment_date == day,
            Appointment.status != "cancelled",
        ).order_by(Appointment.appointment_time.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    async def scheduled_between(self, first: date, last: date) -> Sequence[Appointment]:
        q = select(Appointment).where(
            Appointment.appointment_date >= first,
            Appointment.appointment_date <= last,
            Appointment.status == "scheduled",
        ).order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
        res = await self.session.execute(q)
        return res.scalars().all()
