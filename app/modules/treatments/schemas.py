import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from pydantic import BaseModel, Field
from app.core.paging import Pagination
from app.modules.appointments.schemas import PatientBrief

PaymentStatus = Literal["pending", "partial", "paid"]

class LineItemIn(BaseModel):
    procedure_id: uuid.UUID
    quantity: int = Field(1, ge=1)
    unit_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    tooth_number: str | None = Field(None, max_length=16)
    notes: str | None = None

class TreatmentCreate(BaseModel):
    patient_id: uuid.UUID
    appointment_id: uuid.UUID | None = None
    treatment_date: date
    notes: str | None = None
    procedures: list[LineItemIn] = Field(..., min_length=1)

class TreatmentUpdate(BaseModel):
    appointment_id: uuid.UUID | None = None
    treatment_date: date | None = None
    notes: str | None = None
    # full replacement when present
    procedures: list[LineItemIn] | None = Field(None, min_length=1)

class PaymentUpdate(BaseModel):
    payment_status: PaymentStatus
    amount_paid: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)

class ProcedureBrief(BaseModel):
    id: uuid.UUID
    name: str
    category: str | None
    class Config: from_attributes = True

class LineItemOut(BaseModel):
    id: uuid.UUID
    procedure_id: uuid.UUID
    procedure: ProcedureBrief | None = None
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    tooth_number: str | None
    notes: str | None
    class Config: from_attributes = True

class TreatmentOut(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    appointment_id: uuid.UUID | None
    treatment_date: date
    total_amount: Decimal
    payment_status: str
    amount_paid: Decimal
    notes: str | None
    patient: PatientBrief | None = None
    items: list[LineItemOut] = []
    created_at: datetime
    updated_at: datetime
    class Config: from_attributes = True

class TreatmentList(BaseModel):
    treatments: list[TreatmentOut]
    pagination: Pagination
