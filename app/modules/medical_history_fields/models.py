from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Boolean
from app.core.base import Base, TimestampedMixin

class MedicalHistoryField(Base, TimestampedMixin):
    """A question shown on the intake form; answers land in ``Patient.medical_history``."""
    field_name: Mapped[str] = mapped_column(String(200), unique=True)
    field_type: Mapped[str] = mapped_column(String(16), default="checkbox")  # checkbox | text | number
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
