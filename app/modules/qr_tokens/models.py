import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, Boolean, TIMESTAMP, ForeignKey
from app.core.base import Base, TimestampedMixin

class QRRegistrationToken(Base, TimestampedMixin):
    __tablename__ = "qr_registration_token"

    token: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    qr_type: Mapped[str] = mapped_column(String(16), default="single-use")  # single-use | reusable | generic
    expires_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))  # ignored for generic
    used: Mapped[bool] = mapped_column(Boolean, default=False)
    reusable: Mapped[bool] = mapped_column(Boolean, default=False)
    usage_count: Mapped[int] = mapped_column(Integer, default=0)
    used_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    last_patient_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("patient.id", ondelete="SET NULL"), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
