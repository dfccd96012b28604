import uuid
import logging
from datetime import date, datetime, timedelta
from typing import Callable
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.errors import Conflict, InvalidState, NotFound, ServiceUnavailable, ValidationFailed
from app.core.mailer import Mailer, MailerError
from app.core.paging import PageParams
from app.core.redis import RedisManager, redis_manager
from app.modules.appointments.models import Appointment
from app.modules.appointments.repository import AppointmentRepository
from app.modules.appointments.schemas import AppointmentCreate, AppointmentUpdate
from app.modules.appointments.scheduling import Booking, available_slots, conflicts
from app.modules.patients.repository import PatientRepository

logger = logging.getLogger(__name__)

VALID_NEXT = {
    "scheduled": {"completed", "cancelled", "no-show"},
    "completed": set(),
    "cancelled": set(),
    "no-show": set(),
}

PAST_MESSAGE = "Cannot book appointments in the past"

def _local_now() -> datetime:
    return datetime.now()

def _booking(a: Appointment) -> Booking:
    return Booking(day=a.appointment_date, start=a.appointment_time, duration_minutes=a.duration_minutes, id=a.id)

class AppointmentService:
    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = _local_now, cache: RedisManager = redis_manager):
        self.session = session
        self.appts = AppointmentRepository(session)
        self.patients = PatientRepository(session)
        self.clock = clock
        self.cache = cache

    async def _require_patient(self, patient_id: uuid.UUID):
        patient = await self.patients.get(patient_id)
        if not patient:
            raise NotFound("Patient not found")
        return patient

    def _check_not_past(self, starts_at: datetime):
        earliest = self.clock() + timedelta(minutes=settings.APPOINTMENT_MIN_LEAD_MINUTES)
        if starts_at < earliest:
            raise InvalidState("Cannot schedule appointments in the past")

    async def _check_free(self, candidate: Booking, exclude_id: uuid.UUID | None = None):
        existing = [_booking(a) for a in await self.appts.active_on(candidate.day)]
        if conflicts(candidate, existing, exclude_id=exclude_id):
            raise Conflict("Appointment time conflicts with existing appointment")

    async def create(self, payload: AppointmentCreate) -> Appointment:
        await self._require_patient(payload.patient_id)
        candidate = Booking(day=payload.appointment_date, start=payload.appointment_time, duration_minutes=payload.duration_minutes)
        self._check_not_past(candidate.starts_at)
        await self._check_free(candidate)
        appt = await self.appts.create(**payload.model_dump(), status="scheduled")
        await self.session.commit()
        logger.info(f"Appointment {appt.id} booked for {candidate.starts_at.isoformat()} ({candidate.duration_minutes} min)")
        return appt

    async def get(self, appt_id: uuid.UUID) -> Appointment:
        appt = await self.appts.get(appt_id)
        if not appt:
            raise NotFound("Appointment not found")
        return appt

    async def list(self, page: PageParams, **filters):
        return await self.appts.list(limit=page.limit, offset=page.offset, **filters)

    def _transition(self, appt: Appointment, new_status: str):
        if new_status == appt.status:
            return
        if new_status not in VALID_NEXT.get(appt.status, set()):
            raise InvalidState(f"Cannot change appointment status from '{appt.status}' to '{new_status}'")
        appt.status = new_status

    async def update(self, appt_id: uuid.UUID, payload: AppointmentUpdate) -> Appointment:
        appt = await self.get(appt_id)
        data = payload.model_dump(exclude_unset=True)
        for required in ("patient_id", "appointment_date", "appointment_time", "duration_minutes", "status"):
            if data.get(required, "") is None:
                data.pop(required)

        if "patient_id" in data and data["patient_id"] != appt.patient_id:
            await self._require_patient(data["patient_id"])

        new_status = data.pop("status", None)
        moving = any(k in data for k in ("appointment_date", "appointment_time", "duration_minutes"))
        if moving:
            candidate = Booking(
                day=data.get("appointment_date", appt.appointment_date),
                start=data.get("appointment_time", appt.appointment_time),
                duration_minutes=data.get("duration_minutes", appt.duration_minutes),
            )
            # recording a visit after the fact is allowed
            if new_status != "completed":
                self._check_not_past(candidate.starts_at)
            if (new_status or appt.status) != "cancelled":
                await self._check_free(candidate, exclude_id=appt.id)

        if new_status:
            self._transition(appt, new_status)
        for k, v in data.items():
            setattr(appt, k, v)
        await self.session.flush()
        if "patient_id" in data:
            await self.session.refresh(appt, ["patient"])
        await self.session.commit()
        return appt

    async def cancel(self, appt_id: uuid.UUID) -> Appointment:
        appt = await self.get(appt_id)
        self._transition(appt, "cancelled")
        await self.session.commit()
        logger.info(f"Appointment {appt.id} cancelled")
        return appt

    def mark_completed(self, appt: Appointment) -> None:
        """Used when a treatment is recorded against the visit. The caller commits."""
        if appt.status == "scheduled":
            appt.status = "completed"
        elif appt.status != "completed":
            logger.warning(f"Appointment {appt.id} is '{appt.status}'; leaving status unchanged")

    async def availability(self, day: date, duration: int) -> dict:
        hours = {
            "start": settings.BUSINESS_HOURS_START.strftime("%H:%M:%S"),
            "end": settings.BUSINESS_HOURS_END.strftime("%H:%M:%S"),
            "slot_duration": settings.SLOT_STEP_MINUTES,
            "buffer_minutes": settings.APPOINTMENT_BUFFER_MINUTES,
        }
        result = {"date": day.isoformat(), "duration": duration, "business_hours": hours}
        if day < self.clock().date():
            return {**result, "available_slots": [], "total_slots": 0, "message": PAST_MESSAGE}

        cached = await self.cache.get_availability(day.isoformat(), duration)
        if cached is not None:
            return cached

        existing = [_booking(a) for a in await self.appts.active_on(day)]
        slots = available_slots(
            day, duration, existing,
            opens=settings.BUSINESS_HOURS_START,
            closes=settings.BUSINESS_HOURS_END,
            step_minutes=settings.SLOT_STEP_MINUTES,
            buffer_minutes=settings.APPOINTMENT_BUFFER_MINUTES,
        )
        result = {**result, "available_slots": slots, "total_slots": len(slots)}
        await self.cache.set_availability(day.isoformat(), duration, result)
        return result

    async def clear_availability_cache(self) -> int:
        cleared = await self.cache.clear_availability()
        logger.info(f"Cleared {cleared} cached availability entries")
        return cleared

    async def notify(self, appt_id: uuid.UUID, mailer: Mailer | None) -> str | None:
        if mailer is None:
            raise ServiceUnavailable("Email service not configured")
        appt = await self.get(appt_id)
        patient = appt.patient
        if not patient or not patient.email:
            raise ValidationFailed("Patient has no email address")
        when = appt.starts_at
        html = (
            f"<h2>Appointment Reminder</h2>"
            f"<p>Dear {patient.first_name} {patient.last_name},</p>"
            f"<p>This is a reminder about your upcoming appointment at {settings.CLINIC_NAME}.</p>"
            f"<p><strong>Date:</strong> {when.strftime('%A, %B %d, %Y')}<br>"
            f"<strong>Time:</strong> {when.strftime('%I:%M %p').lstrip('0')}</p>"
        )
        if appt.notes:
            html += f"<p><strong>Notes:</strong> {appt.notes}</p>"
        html += "<p>Please arrive 10 minutes before your scheduled time.</p>"
        try:
            return await mailer.send(patient.email, f"Appointment Reminder - {settings.CLINIC_NAME}", html)
        except MailerError:
            raise ServiceUnavailable("Failed to send email")
