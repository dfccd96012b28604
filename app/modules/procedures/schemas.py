import uuid
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field
from app.core.paging import Pagination

class ProcedureCreate(BaseModel):
    category: str | None = Field(None, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    estimated_duration: int | None = Field(None, ge=0)
    is_active: bool = True

class ProcedureUpdate(BaseModel):
    category: str | None = Field(None, max_length=64)
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    price: Decimal | None = Field(None, ge=0, max_digits=10, decimal_places=2)
    estimated_duration: int | None = Field(None, ge=0)
    is_active: bool | None = None

class ProcedureOut(BaseModel):
    id: uuid.UUID
    category: str | None
    name: str
    description: str | None
    price: Decimal | None
    estimated_duration: int | None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    class Config: from_attributes = True

class ProcedureList(BaseModel):
    procedures: list[ProcedureOut]
    pagination: Pagination
