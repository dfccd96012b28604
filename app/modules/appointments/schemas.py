import uuid
from datetime import date, time, datetime
from typing import Literal
from pydantic import BaseModel, Field
from app.core.paging import Pagination

AppointmentStatus = Literal["scheduled", "completed", "cancelled", "no-show"]

class AppointmentCreate(BaseModel):
    patient_id: uuid.UUID
    appointment_date: date
    appointment_time: time
    duration_minutes: int = Field(60, ge=15, le=480)
    reason: str | None = Field(None, max_length=500)
    notes: str | None = None

class AppointmentUpdate(BaseModel):
    # any subset; date/time/duration changes are re-checked
    patient_id: uuid.UUID | None = None
    appointment_date: date | None = None
    appointment_time: time | None = None
    duration_minutes: int | None = Field(None, ge=15, le=480)
    status: AppointmentStatus | None = None
    reason: str | None = Field(None, max_length=500)
    notes: str | None = None

class PatientBrief(BaseModel):
    id: uuid.UUID
    patient_code: str
    first_name: str
    last_name: str
    email: str | None
    phone: str | None
    class Config: from_attributes = True

class AppointmentOut(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    appointment_date: date
    appointment_time: time
    duration_minutes: int
    status: str
    reason: str | None
    notes: str | None
    reminder_24h_sent_at: datetime | None
    reminder_day_of_sent_at: datetime | None
    reminder_custom_sent_at: datetime | None
    reminder_count: int
    reminder_status: str
    patient: PatientBrief | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class AppointmentList(BaseModel):
    appointments: list[AppointmentOut]
    pagination: Pagination

class BusinessHours(BaseModel):
    start: str
    end: str
    slot_duration: int
    buffer_minutes: int

class Availability(BaseModel):
    date: str  # YYYY-MM-DD
    duration: int
    available_slots: list[str]
    total_slots: int
    business_hours: BusinessHours
    message: str | None = None

class NotifyResult(BaseModel):
    success: bool = True
    email_id: str | None = None
