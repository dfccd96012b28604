import uuid
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.core.config import settings
from app.core.errors import Conflict, InvalidState, NotFound
from app.core.mailer import Mailer, MailerError
from app.core.paging import PageParams
from app.modules.notifications.service import NotificationsService
from app.modules.patients.repository import PatientRepository
from app.modules.patients.schemas import PatientCreate, PatientUpdate, PatientBase
from app.modules.patients.models import Patient

logger = logging.getLogger(__name__)

class PatientService:
    def __init__(self, session: AsyncSession, mailer: Mailer | None = None):
        self.repo = PatientRepository(session)
        self.notifications = NotificationsService(session)
        self.session = session
        self.mailer = mailer

    async def create(self, payload: PatientCreate) -> Patient:
        obj = await self.repo.create(
            **payload.model_dump(),
            registration_status="approved",
            approved_at=utcnow(),
        )
        await self.session.commit()
        logger.info(f"Patient {obj.patient_code} created")
        return obj

    async def get(self, patient_id: uuid.UUID) -> Patient:
        obj = await self.repo.get(patient_id)
        if not obj:
            raise NotFound("Patient not found")
        return obj

    async def list(self, page: PageParams, *, search: str | None = None, registration_status: str | None = None):
        return await self.repo.list(search=search, registration_status=registration_status, limit=page.limit, offset=page.offset)

    async def update(self, patient_id: uuid.UUID, payload: PatientUpdate) -> Patient:
        obj = await self.get(patient_id)
        obj = await self.repo.update(obj, **payload.model_dump(exclude_unset=True))
        await self.session.commit()
        return obj

    async def delete(self, patient_id: uuid.UUID) -> Patient:
        obj = await self.get(patient_id)
        await self.repo.delete(obj)
        await self.session.commit()
        logger.info(f"Patient {obj.patient_code} deleted")
        return obj

    async def create_pending(self, payload: PatientBase, source: str) -> Patient:
        """Stage a self-registered patient awaiting admin review. The caller commits."""
        if payload.email and await self.repo.get_by_email(payload.email):
            raise Conflict("Email already registered")
        obj = await self.repo.create(
            **payload.model_dump(),
            registration_status="pending",
            registration_source=source,
            consent_signed_at=utcnow(),
        )
        await self.notifications.create(
            type="registration_pending",
            title="New Patient Registration",
            message=f"{obj.full_name} has submitted a registration request.",
            patient_id=obj.id,
        )
        return obj

    async def register(self, payload: PatientBase, source: str = "online") -> Patient:
        obj = await self.create_pending(payload, source)
        await self.session.commit()
        await self.acknowledge_registration(obj)
        return obj

    async def acknowledge_registration(self, obj: Patient) -> None:
        await self._email(
            obj,
            f"Registration Received - {settings.CLINIC_NAME}",
            "<p>Thank you for registering. Your registration is currently under review "
            "and you will receive an email once it is approved.</p>",
        )

    async def approve(self, patient_id: uuid.UUID) -> Patient:
        obj = await self._pending(patient_id)
        obj.registration_status = "approved"
        obj.approved_at = utcnow()
        await self.notifications.create(
            type="registration_approved",
            title="Registration Approved",
            message=f"{obj.full_name} ({obj.patient_code}) was approved.",
            patient_id=obj.id,
        )
        await self.session.commit()
        await self._email(
            obj,
            f"Registration Approved - {settings.CLINIC_NAME}",
            f"<p>Great news! Your registration has been approved. Your patient ID is <strong>{obj.patient_code}</strong>.</p>",
        )
        return obj

    async def deny(self, patient_id: uuid.UUID, reason: str | None = None) -> Patient:
        obj = await self._pending(patient_id)
        obj.registration_status = "denied"
        obj.denied_at = utcnow()
        obj.denial_reason = reason
        await self.notifications.create(
            type="registration_denied",
            title="Registration Denied",
            message=f"{obj.full_name} ({obj.patient_code}) was denied.",
            patient_id=obj.id,
        )
        await self.session.commit()
        body = "<p>Unfortunately we are unable to approve your registration at this time.</p>"
        if reason:
            body += f"<p>Reason: {reason}</p>"
        await self._email(obj, f"Registration Update - {settings.CLINIC_NAME}", body)
        return obj

    async def _pending(self, patient_id: uuid.UUID) -> Patient:
        obj = await self.get(patient_id)
        if obj.registration_status != "pending":
            raise InvalidState("Patient registration is not pending")
        return obj

    async def _email(self, patient: Patient, subject: str, body: str) -> None:
        # courtesy emails; a failure never undoes the registration change
        if not self.mailer or not patient.email:
            return
        html = f"<p>Dear {patient.first_name} {patient.last_name},</p>{body}<p>Best regards,<br>{settings.CLINIC_NAME} Team</p>"
        try:
            await self.mailer.send(patient.email, subject, html)
        except MailerError:
            logger.warning(f"Could not email patient {patient.patient_code}")
