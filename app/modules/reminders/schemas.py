import uuid
from datetime import datetime
from typing import Annotated, Literal
from pydantic import AfterValidator, BaseModel, EmailStr, Field
from app.modules.reminders.templating import unknown_placeholders

ReminderType = Literal["24_hour", "day_of", "custom"]

def _known_only(v: str) -> str:
    unknown = unknown_placeholders(v)
    if unknown:
        raise ValueError(f"Unknown placeholder(s): {', '.join(unknown)}")
    return v

TemplateText = Annotated[str, AfterValidator(_known_only)]

class ReminderConfigCreate(BaseModel):
    reminder_type: ReminderType
    hours_before: int = Field(..., ge=1, le=168)
    is_enabled: bool = True
    subject_template: TemplateText = Field(..., min_length=1, max_length=200)
    body_template: TemplateText = Field(..., min_length=10, max_length=5000)

class ReminderConfigUpdate(BaseModel):
    hours_before: int | None = Field(None, ge=1, le=168)
    is_enabled: bool | None = None
    subject_template: TemplateText | None = Field(None, min_length=1, max_length=200)
    body_template: TemplateText | None = Field(None, min_length=10, max_length=5000)

class ReminderConfigOut(BaseModel):
    id: uuid.UUID
    reminder_type: str
    hours_before: int
    is_enabled: bool
    subject_template: str
    body_template: str
    created_at: datetime
    updated_at: datetime
    class Config: from_attributes = True

class ReminderStatistics(BaseModel):
    total_sent: int
    total_failed: int
    by_type: dict[str, int]

class ReminderConfigList(BaseModel):
    configs: list[ReminderConfigOut]
    statistics: ReminderStatistics
    email_configured: bool

class TestReminder(BaseModel):
    appointment_id: uuid.UUID
    test_email: EmailStr | None = None

class TestReminderResult(BaseModel):
    success: bool = True
    email_id: str | None
    sent_to: str

class DispatchResults(BaseModel):
    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = []

class DispatchSummary(BaseModel):
    success: bool = True
    message: str
    results: DispatchResults
    processed_at: datetime

class DispatcherStatus(BaseModel):
    status: str
    current_time: datetime
    upcoming_appointments: int
    recent_logs: int
    email_configured: bool

class ReminderLogOut(BaseModel):
    id: uuid.UUID
    appointment_id: uuid.UUID
    reminder_type: str
    status: str
    email_address: str | None
    resend_message_id: str | None
    error_message: str | None
    sent_at: datetime
    class Config: from_attributes = True
