import uuid
import html
import logging
from datetime import datetime, timedelta
from typing import Callable
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.core.config import settings
from app.core.errors import Conflict, NotFound, ServiceUnavailable, ValidationFailed
from app.core.mailer import Mailer, MailerError
from app.modules.appointments.models import Appointment
from app.modules.appointments.repository import AppointmentRepository
from app.modules.reminders.models import ReminderConfig
from app.modules.reminders.repository import ReminderConfigRepository, ReminderLogRepository
from app.modules.reminders.schemas import ReminderConfigCreate, ReminderConfigUpdate
from app.modules.reminders import templating

logger = logging.getLogger(__name__)

# per-type idempotency stamp on the appointment row
SENT_FIELD = {
    "24_hour": "reminder_24h_sent_at",
    "day_of": "reminder_day_of_sent_at",
    "custom": "reminder_custom_sent_at",
}

def _local_now() -> datetime:
    return datetime.now()

def send_time(appt: Appointment, hours_before: int) -> datetime:
    return appt.starts_at - timedelta(hours=hours_before)

def is_due(appt: Appointment, hours_before: int, now: datetime, window_hours: int) -> bool:
    at = send_time(appt, hours_before)
    return at <= now < at + timedelta(hours=window_hours)

def context_for(appt: Appointment) -> templating.ReminderContext:
    p = appt.patient
    return templating.build_context(
        first_name=p.first_name,
        last_name=p.last_name,
        patient_code=p.patient_code,
        starts_at=appt.starts_at,
        duration_minutes=appt.duration_minutes,
        reason=appt.reason,
    )

def compose(config: ReminderConfig, appt: Appointment, *, test: bool = False) -> tuple[str, str, str]:
    """Returns (subject, html, text) for one appointment."""
    ctx = context_for(appt)
    subject = templating.render(config.subject_template, ctx)
    text = templating.render(config.body_template, ctx)
    if test:
        subject = f"[TEST] {subject}"
        text = f"[TEST] {text}"
    body = html.escape(text).replace("\n", "<br>")
    banner = "<p><strong>TEST REMINDER EMAIL</strong></p>" if test else ""
    page = (
        f'<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"{banner}<h1>{html.escape(settings.CLINIC_NAME)}</h1>"
        f'<div style="line-height: 1.6;">{body}</div>'
        f"<p>Please contact us at least 24 hours in advance to reschedule or cancel your appointment.</p>"
        f"</div>"
    )
    return subject, page, text


class ReminderDispatcher:
    """One pass over enabled reminder configs. Safe to call at any cadence."""

    def __init__(self, s: AsyncSession, mailer: Mailer | None, clock: Callable[[], datetime] = _local_now):
        self.s = s
        self.mailer = mailer
        self.clock = clock
        self.configs = ReminderConfigRepository(s)
        self.logs = ReminderLogRepository(s)
        self.appts = AppointmentRepository(s)

    async def process(self, now: datetime | None = None) -> dict:
        if self.mailer is None:
            raise ServiceUnavailable("Email service not configured")
        now = now or self.clock()
        window = settings.REMINDER_WINDOW_HOURS
        results = {"processed": 0, "sent": 0, "failed": 0, "skipped": 0, "errors": []}

        configs = await self.configs.enabled()
        if not configs:
            logger.info("No active reminder configurations found")
            return results

        for config in configs:
            field = SENT_FIELD.get(config.reminder_type)
            if field is None:
                results["errors"].append(f"Unsupported reminder type '{config.reminder_type}'")
                continue
            first = (now + timedelta(hours=config.hours_before - window)).date()
            last = (now + timedelta(hours=config.hours_before)).date()
            candidates = await self.appts.scheduled_between(first, last)
            logger.info(f"Processing {config.reminder_type} reminders ({config.hours_before}h before): {len(candidates)} candidate(s)")

            for appt in candidates:
                results["processed"] += 1
                if not is_due(appt, config.hours_before, now, window):
                    results["skipped"] += 1
                    continue
                if getattr(appt, field) is not None:
                    results["skipped"] += 1
                    continue
                if not appt.patient or not appt.patient.email:
                    results["skipped"] += 1
                    continue
                if await self._send(config, appt, field):
                    results["sent"] += 1
                else:
                    results["failed"] += 1
                    p = appt.patient
                    results["errors"].append(
                        f"Failed to send {config.reminder_type} reminder to {p.first_name} {p.last_name}"
                    )
        logger.info(
            f"Reminder pass done: processed={results['processed']} sent={results['sent']} "
            f"failed={results['failed']} skipped={results['skipped']}"
        )
        return results

    async def _send(self, config: ReminderConfig, appt: Appointment, field: str) -> bool:
        email = appt.patient.email
        subject, page, text = compose(config, appt)
        try:
            message_id = await self.mailer.send(email, subject, page, text)
        except MailerError as e:
            # stamp stays unset so the next pass retries
            await self.logs.add(
                appointment_id=appt.id, reminder_type=config.reminder_type, status="failed",
                email_address=email, error_message=str(e),
            )
            await self.s.commit()
            logger.error(f"Failed {config.reminder_type} reminder for appointment {appt.id}: {e}")
            return False

        setattr(appt, field, utcnow())
        appt.reminder_count = (appt.reminder_count or 0) + 1
        appt.reminder_status = "sent"
        await self.logs.add(
            appointment_id=appt.id, reminder_type=config.reminder_type, status="sent",
            email_address=email, resend_message_id=message_id,
        )
        await self.s.commit()
        logger.info(f"Sent {config.reminder_type} reminder for appointment {appt.id} to {email}")
        return True

    async def status(self) -> dict:
        now = self.clock()
        upcoming = [
            a for a in await self.appts.scheduled_between(now.date(), (now + timedelta(hours=48)).date())
            if now <= a.starts_at <= now + timedelta(hours=48)
        ]
        return {
            "status": "Reminder system operational",
            "current_time": now,
            "upcoming_appointments": len(upcoming),
            "recent_logs": await self.logs.count_since(utcnow() - timedelta(hours=24)),
            "email_configured": self.mailer is not None,
        }


class ReminderConfigService:
    def __init__(self, s: AsyncSession, mailer: Mailer | None = None):
        self.s = s
        self.mailer = mailer
        self.repo = ReminderConfigRepository(s)
        self.logs = ReminderLogRepository(s)
        self.appts = AppointmentRepository(s)

    async def list_with_stats(self) -> dict:
        configs = await self.repo.list()
        since = utcnow() - timedelta(days=settings.REMINDER_STATS_DAYS)
        stats = {"total_sent": 0, "total_failed": 0, "by_type": {t: 0 for t in SENT_FIELD}}
        for reminder_type, status, n in await self.logs.counts_since(since):
            if reminder_type.startswith("test_"):
                continue
            if status == "sent":
                stats["total_sent"] += n
                stats["by_type"][reminder_type] = stats["by_type"].get(reminder_type, 0) + n
            elif status == "failed":
                stats["total_failed"] += n
        return {"configs": configs, "statistics": stats, "email_configured": self.mailer is not None}

    async def get(self, config_id: uuid.UUID) -> ReminderConfig:
        obj = await self.repo.get(config_id)
        if not obj:
            raise NotFound("Reminder configuration not found")
        return obj

    async def create(self, payload: ReminderConfigCreate) -> ReminderConfig:
        if await self.repo.get_by_type(payload.reminder_type):
            raise Conflict(f"Configuration for {payload.reminder_type} already exists")
        obj = await self.repo.create(**payload.model_dump())
        await self.s.commit()
        return obj

    async def update(self, config_id: uuid.UUID, payload: ReminderConfigUpdate) -> ReminderConfig:
        obj = await self.get(config_id)
        for k, v in payload.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(obj, k, v)
        await self.s.commit()
        return obj

    async def send_test(self, config_id: uuid.UUID, appointment_id: uuid.UUID, test_email: str | None = None) -> tuple[str | None, str]:
        if self.mailer is None:
            raise ServiceUnavailable("Email service not configured")
        config = await self.get(config_id)
        appt = await self.appts.get(appointment_id)
        if not appt:
            raise NotFound("Appointment not found")
        target = test_email or (appt.patient.email if appt.patient else None)
        if not target:
            raise ValidationFailed("No email address available for testing")

        subject, page, text = compose(config, appt, test=True)
        log_type = f"test_{config.reminder_type}"
        try:
            message_id = await self.mailer.send(target, subject, page, text)
        except MailerError as e:
            await self.logs.add(appointment_id=appt.id, reminder_type=log_type, status="failed", email_address=target, error_message=str(e))
            await self.s.commit()
            raise ServiceUnavailable(f"Failed to send test email: {e}")
        await self.logs.add(appointment_id=appt.id, reminder_type=log_type, status="sent", email_address=target, resend_message_id=message_id)
        await self.s.commit()
        return message_id, target

    async def history(self, appointment_id: uuid.UUID):
        """Every send attempt for one appointment, oldest first, test sends included."""
        if not await self.appts.get(appointment_id):
            raise NotFound("Appointment not found")
        return await self.logs.for_appointment(appointment_id)
