import uuid
from datetime import date, time, datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, Date, Time, TIMESTAMP, ForeignKey
from app.core.base import Base, TimestampedMixin
from app.modules.patients.models import Patient

class Appointment(Base, TimestampedMixin):
    patient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("patient.id", ondelete="CASCADE"), index=True)

    # clinic-local wall clock; the calendar is single-site
    appointment_date: Mapped[date] = mapped_column(Date, index=True)
    appointment_time: Mapped[time] = mapped_column(Time)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=60)

    status: Mapped[str] = mapped_column(String(16), default="scheduled")  # scheduled, completed, cancelled, no-show
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # one stamp per reminder type so each type is sent at most once
    reminder_24h_sent_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    reminder_day_of_sent_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    reminder_custom_sent_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    reminder_count: Mapped[int] = mapped_column(Integer, default=0)
    reminder_status: Mapped[str] = mapped_column(String(16), default="pending")  # pending | sent

    patient: Mapped[Patient] = relationship(lazy="selectin")

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.appointment_date, self.appointment_time)
