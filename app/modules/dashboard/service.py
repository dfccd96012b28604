import uuid
from datetime import date, timedelta
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.core.config import settings
from app.core.errors import NotFound
from app.modules.dashboard.repository import StatsRepository
from app.modules.patients.repository import PatientRepository

CENTS = Decimal("0.01")

def percent_of(value, target: int) -> int:
    if target <= 0:
        return 100
    return min(round(float(value) / target * 100), 100)

def month_bounds(day: date) -> tuple[date, date]:
    start = day.replace(day=1)
    nxt = (start + timedelta(days=32)).replace(day=1)
    return start, nxt

class DashboardService:
    def __init__(self, s: AsyncSession, today=date.today):
        self.s = s
        self.repo = StatsRepository(s)
        self.today = today

    async def clinic_stats(self) -> dict:
        # clinic-local calendar day, same as the booking checks
        today = self.today()
        month_start, next_month = month_bounds(today)
        patients = await self.repo.count_patients()
        appointments = await self.repo.count_appointments_on(today)
        revenue = (await self.repo.revenue_between(month_start, next_month)).quantize(CENTS)
        procedures = await self.repo.count_active_procedures()
        return {
            "total_patients": patients,
            "today_appointments": appointments,
            "monthly_revenue": revenue,
            "active_procedures": procedures,
            "progress": {
                "patients": percent_of(patients, settings.DASHBOARD_TARGET_PATIENTS),
                "daily_schedule": percent_of(appointments, settings.DASHBOARD_TARGET_DAILY_APPOINTMENTS),
                "monthly_revenue": percent_of(revenue, settings.DASHBOARD_TARGET_MONTHLY_REVENUE),
                "procedures": 100 if procedures else 0,
            },
            "targets": {
                "patients": settings.DASHBOARD_TARGET_PATIENTS,
                "daily_appointments": settings.DASHBOARD_TARGET_DAILY_APPOINTMENTS,
                "monthly_revenue": settings.DASHBOARD_TARGET_MONTHLY_REVENUE,
            },
            "current_date": today,
            "current_month": today.strftime("%Y-%m"),
            "last_updated": utcnow(),
        }

    async def patient_stats(self, patient_id: uuid.UUID) -> dict:
        patient = await PatientRepository(self.s).get(patient_id)
        if not patient:
            raise NotFound("Patient not found")
        return {
            "patient_id": patient.id,
            "total_treatments": await self.repo.count_patient_treatments(patient.id),
            "total_amount_paid": (await self.repo.patient_amount_paid(patient.id)).quantize(CENTS),
            "upcoming_appointments": await self.repo.count_upcoming_appointments(patient.id, self.today()),
            "patient_since": patient.created_at,
            "last_updated": utcnow(),
        }
