import uuid
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, Integer, Date, Numeric, ForeignKey
from app.core.base import Base, TimestampedMixin
from app.modules.patients.models import Patient
from app.modules.procedures.models import Procedure

class Treatment(Base, TimestampedMixin):
    patient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("patient.id", ondelete="CASCADE"), index=True)
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("appointment.id", ondelete="SET NULL"), nullable=True)
    treatment_date: Mapped[date] = mapped_column(Date, index=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    payment_status: Mapped[str] = mapped_column(String(16), default="pending")  # pending | partial | paid
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    patient: Mapped[Patient] = relationship(lazy="selectin")
    items: Mapped[list["TreatmentProcedure"]] = relationship(
        back_populates="treatment", cascade="all, delete-orphan", lazy="selectin",
    )

class TreatmentProcedure(Base, TimestampedMixin):
    treatment_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("treatment.id", ondelete="CASCADE"), index=True)
    procedure_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("procedure.id"), index=True)
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    tooth_number: Mapped[str | None] = mapped_column(String(16), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    treatment: Mapped[Treatment] = relationship(back_populates="items")
    procedure: Mapped[Procedure] = relationship(lazy="selectin")
