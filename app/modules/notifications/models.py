import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Boolean, ForeignKey
from app.core.base import Base, TimestampedMixin

class Notification(Base, TimestampedMixin):
    type: Mapped[str] = mapped_column(String(48))  # registration_pending | registration_approved | registration_denied
    title: Mapped[str] = mapped_column(String(200))
    message: Mapped[str] = mapped_column(Text)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False)
    patient_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("patient.id", ondelete="CASCADE"), nullable=True)
