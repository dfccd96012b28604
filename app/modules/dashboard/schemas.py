import uuid
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel

class DashboardProgress(BaseModel):
    patients: int
    daily_schedule: int
    monthly_revenue: int
    procedures: int

class DashboardTargets(BaseModel):
    patients: int
    daily_appointments: int
    monthly_revenue: int

class DashboardStats(BaseModel):
    total_patients: int
    today_appointments: int
    monthly_revenue: Decimal
    active_procedures: int
    progress: DashboardProgress
    targets: DashboardTargets
    current_date: date
    current_month: str
    last_updated: datetime

class DashboardStatsOut(BaseModel):
    stats: DashboardStats

class PatientStats(BaseModel):
    patient_id: uuid.UUID
    total_treatments: int
    total_amount_paid: Decimal
    upcoming_appointments: int
    patient_since: datetime
    last_updated: datetime

class PatientStatsOut(BaseModel):
    stats: PatientStats
