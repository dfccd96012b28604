import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, Boolean, TIMESTAMP, ForeignKey
from app.core.base import Base, TimestampedMixin, utcnow

class ReminderConfig(Base, TimestampedMixin):
    __tablename__ = "reminder_config"

    reminder_type: Mapped[str] = mapped_column(String(16), unique=True)  # 24_hour | day_of | custom
    hours_before: Mapped[int] = mapped_column(Integer)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    subject_template: Mapped[str] = mapped_column(String(200))
    body_template: Mapped[str] = mapped_column(Text)

class ReminderLog(Base, TimestampedMixin):
    __tablename__ = "reminder_log"

    appointment_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("appointment.id", ondelete="CASCADE"), index=True)
    reminder_type: Mapped[str] = mapped_column(String(32))  # also test_<type> for manual test sends
    status: Mapped[str] = mapped_column(String(16))  # sent | failed
    email_address: Mapped[str | None] = mapped_column(String(320), nullable=True)
    resend_message_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), default=utcnow, index=True)
