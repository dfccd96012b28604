import uuid
from datetime import date, datetime
from typing import Any, Literal
from pydantic import BaseModel, EmailStr, Field, field_validator
from app.core.paging import Pagination

RegistrationStatus = Literal["pending", "approved", "denied"]
RegistrationSource = Literal["manual", "qr-token", "online", "referral"]

_PHONE_CHARS = set("0123456789+-() .")

def _check_phone(v: str | None) -> str | None:
    if v is None or v == "":
        return None
    if not set(v) <= _PHONE_CHARS or sum(c.isdigit() for c in v) < 7:
        raise ValueError("Invalid phone number")
    return v

class PatientBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    middle_name: str | None = Field(None, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date | None = None
    gender: str | None = None
    phone: str | None = None
    email: EmailStr | None = None
    address: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    medical_history: dict[str, Any] = Field(default_factory=dict)
    notes: str | None = None

    @field_validator("first_name", "last_name")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("phone", "emergency_contact_phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        return _check_phone(v)

    @field_validator("date_of_birth")
    @classmethod
    def _dob(cls, v: date | None) -> date | None:
        if v and v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        return v

class PatientCreate(PatientBase):
    registration_source: RegistrationSource = "manual"

class PatientSelfRegistration(PatientBase):
    email: EmailStr

class PatientUpdate(BaseModel):
    first_name: str | None = Field(None, min_length=1, max_length=100)
    middle_name: str | None = None
    last_name: str | None = Field(None, min_length=1, max_length=100)
    date_of_birth: date | None = None
    gender: str | None = None
    phone: str | None = None
    email: EmailStr | None = None
    address: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    medical_history: dict[str, Any] | None = None
    notes: str | None = None

    @field_validator("phone", "emergency_contact_phone")
    @classmethod
    def _phone(cls, v: str | None) -> str | None:
        return _check_phone(v)

class PatientDeny(BaseModel):
    reason: str | None = Field(None, max_length=1000)

class PatientOut(BaseModel):
    id: uuid.UUID
    patient_code: str
    first_name: str
    middle_name: str | None
    last_name: str
    date_of_birth: date | None
    gender: str | None
    phone: str | None
    email: str | None
    address: str | None
    emergency_contact_name: str | None
    emergency_contact_phone: str | None
    medical_history: dict[str, Any] | None
    notes: str | None
    registration_status: str
    registration_source: str
    approved_at: datetime | None
    denied_at: datetime | None
    denial_reason: str | None
    consent_signed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class PatientList(BaseModel):
    patients: list[PatientOut]
    pagination: Pagination

class RegistrationReceipt(BaseModel):
    success: bool = True
    message: str
    patient_id: uuid.UUID
    patient_code: str
