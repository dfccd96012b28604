import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field, model_validator
from app.core.paging import Pagination
from app.modules.patients.schemas import PatientBase

QRType = Literal["single-use", "reusable", "generic"]
TokenStatus = Literal["all", "active", "used", "expired"]

class TokenIssue(BaseModel):
    qr_type: QRType = "single-use"
    expiration_hours: int = Field(24, ge=0, le=8760)
    reusable: bool = False
    note: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def _hours(self):
        if self.qr_type != "generic" and self.expiration_hours < 1:
            raise ValueError("expiration_hours must be at least 1")
        return self

class TokenOut(BaseModel):
    id: uuid.UUID
    token: str
    qr_type: str
    expires_at: datetime
    used: bool
    reusable: bool
    usage_count: int
    used_at: datetime | None
    note: str | None
    created_at: datetime
    class Config: from_attributes = True

class TokenDetail(TokenOut):
    registration_url: str
    is_expired: bool
    is_used: bool
    status: str

class IssuedToken(TokenDetail):
    qr_code: str  # data:image/png;base64,...

class TokenList(BaseModel):
    tokens: list[TokenDetail]
    pagination: Pagination

class TokenValidate(BaseModel):
    token: str = Field(..., min_length=1, max_length=64)

class TokenValidation(BaseModel):
    valid: bool
    reason: str | None = None
    token: TokenOut | None = None

class QRRegistration(BaseModel):
    token: str = Field(..., min_length=1, max_length=64)
    patient_data: PatientBase

class QRRegistrationResult(BaseModel):
    success: bool = True
    message: str
    patient_id: uuid.UUID
    patient_code: str
