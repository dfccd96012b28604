import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

FieldType = Literal["checkbox", "text", "number"]

class MedicalHistoryFieldCreate(BaseModel):
    field_name: str = Field(..., min_length=1, max_length=200)
    field_type: FieldType = "checkbox"
    is_active: bool = True

class MedicalHistoryFieldUpdate(BaseModel):
    field_name: str | None = Field(None, min_length=1, max_length=200)
    field_type: FieldType | None = None
    is_active: bool | None = None

class MedicalHistoryFieldOut(BaseModel):
    id: uuid.UUID
    field_name: str
    field_type: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    class Config: from_attributes = True

class MedicalHistoryFieldList(BaseModel):
    fields: list[MedicalHistoryFieldOut]
