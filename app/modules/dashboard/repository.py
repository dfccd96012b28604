import uuid
from datetime import date
from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.patients.models import Patient
from app.modules.appointments.models import Appointment
from app.modules.procedures.models import Procedure
from app.modules.treatments.models import Treatment

class StatsRepository:
    """Read-only aggregates; every figure is one SQL query."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _scalar(self, q):
        return (await self.session.execute(q)).scalar_one()

    async def count_patients(self) -> int:
        return await self._scalar(select(func.count(Patient.id)))

    async def count_appointments_on(self, day: date) -> int:
        q = select(func.count(Appointment.id)).where(
            Appointment.appointment_date == day, Appointment.status != "cancelled",
        )
        return await self._scalar(q)

    async def revenue_between(self, start: date, end: date) -> Decimal:
        q = select(func.coalesce(func.sum(Treatment.total_amount), 0)).where(
            Treatment.treatment_date >= start, Treatment.treatment_date < end,
        )
        return Decimal(str(await self._scalar(q)))

    async def count_active_procedures(self) -> int:
        return await self._scalar(select(func.count(Procedure.id)).where(Procedure.is_active.is_(True)))

    async def count_patient_treatments(self, patient_id: uuid.UUID) -> int:
        return await self._scalar(select(func.count(Treatment.id)).where(Treatment.patient_id == patient_id))

    async def patient_amount_paid(self, patient_id: uuid.UUID) -> Decimal:
        q = select(func.coalesce(func.sum(Treatment.amount_paid), 0)).where(Treatment.patient_id == patient_id)
        return Decimal(str(await self._scalar(q)))

    async def count_upcoming_appointments(self, patient_id: uuid.UUID, today: date) -> int:
        q = select(func.count(Appointment.id)).where(
            Appointment.patient_id == patient_id,
            Appointment.appointment_date >= today,
            Appointment.status == "scheduled",
        )
        return await self._scalar(q)
