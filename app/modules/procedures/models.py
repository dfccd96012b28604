from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Numeric, Integer, Boolean
from app.core.base import Base, TimestampedMixin

class Procedure(Base, TimestampedMixin):
    category: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)  # preventive, restorative, endodontic, ...
    name: Mapped[str] = mapped_column(String(200), unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    estimated_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # minutes
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
