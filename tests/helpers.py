"""Test doubles and builders shared across test modules."""

from datetime import datetime
from app.core.mailer import MailerError


class FakeMailer:
    """Records every send; addresses in ``failing`` raise like a rejected API call."""

    def __init__(self):
        self.sent: list[dict] = []
        self.failing: set[str] = set()

    async def send(self, to, subject, html, text=None):
        if to in self.failing:
            raise MailerError(f"rejected recipient {to}")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return f"msg-{len(self.sent)}"


class DictCache:
    """In-process stand-in for the Redis availability cache."""

    def __init__(self):
        self.store: dict[str, dict] = {}
        self.hits = 0

    async def get_availability(self, date_str, duration):
        data = self.store.get(f"{date_str}:{duration}")
        if data is not None:
            self.hits += 1
        return data

    async def set_availability(self, date_str, duration, data):
        self.store[f"{date_str}:{duration}"] = data

    async def clear_availability(self):
        n = len(self.store)
        self.store.clear()
        return n


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


async def make_patient(session, first="Jane", last="Doe", email="jane@example.com", **extra):
    from app.modules.patients.repository import PatientRepository
    p = await PatientRepository(session).create(first_name=first, last_name=last, email=email, **extra)
    await session.commit()
    return p


async def make_appointment(session, patient, day, at, duration=30, status="scheduled", **extra):
    from app.modules.appointments.repository import AppointmentRepository
    a = await AppointmentRepository(session).create(
        patient_id=patient.id, appointment_date=day, appointment_time=at,
        duration_minutes=duration, status=status, **extra,
    )
    await session.commit()
    return a
