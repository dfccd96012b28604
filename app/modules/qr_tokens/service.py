import io
import uuid
import base64
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable
import qrcode
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import as_utc
from app.core.config import settings
from app.core.errors import AlreadyUsed, Expired, NotFound
from app.core.mailer import Mailer
from app.core.paging import PageParams
from app.modules.patients.models import Patient
from app.modules.patients.schemas import PatientBase
from app.modules.patients.service import PatientService
from app.modules.qr_tokens.models import QRRegistrationToken
from app.modules.qr_tokens.repository import QRTokenRepository

logger = logging.getLogger(__name__)

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def registration_url(t: QRRegistrationToken) -> str:
    base = settings.SITE_URL.rstrip("/")
    if t.qr_type == "generic":
        return f"{base}/patient-registration?token={t.token}"
    return f"{base}/patient-registration/{t.token}"

def qr_png(data: str) -> bytes:
    qr = qrcode.QRCode(version=1, box_size=10, border=5)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()

class QRTokenService:
    def __init__(self, s: AsyncSession, mailer: Mailer | None = None, clock: Callable[[], datetime] = _utcnow):
        self.s = s
        self.repo = QRTokenRepository(s)
        self.patients = PatientService(s, mailer)
        self.clock = clock

    def is_expired(self, t: QRRegistrationToken) -> bool:
        return t.qr_type != "generic" and self.clock() > as_utc(t.expires_at)

    @staticmethod
    def is_used(t: QRRegistrationToken) -> bool:
        return not t.reusable and t.used

    def describe(self, t: QRRegistrationToken) -> dict:
        expired, used = self.is_expired(t), self.is_used(t)
        return {
            "id": t.id, "token": t.token, "qr_type": t.qr_type, "expires_at": t.expires_at,
            "used": t.used, "reusable": t.reusable, "usage_count": t.usage_count,
            "used_at": t.used_at, "note": t.note, "created_at": t.created_at,
            "registration_url": registration_url(t),
            "is_expired": expired,
            "is_used": used,
            "status": "used" if used else "expired" if expired else "active",
        }

    async def issue(self, *, qr_type: str, expiration_hours: int, reusable: bool = False, note: str | None = None) -> QRRegistrationToken:
        t = await self.repo.create(
            token=str(uuid.uuid4()),
            qr_type=qr_type,
            expires_at=self.clock() + timedelta(hours=expiration_hours),
            reusable=reusable or qr_type in ("reusable", "generic"),
            used=False,
            usage_count=0,
            note=note,
        )
        await self.s.commit()
        logger.info(f"Issued {qr_type} registration token {t.id}")
        return t

    async def validate(self, token: str) -> QRRegistrationToken:
        t = await self.repo.get_by_token(token)
        if not t:
            raise NotFound("Token not found")
        if self.is_expired(t):
            raise Expired("Token has expired")
        if self.is_used(t):
            raise AlreadyUsed("Token has already been used")
        return t

    async def consume(self, token: str, payload: PatientBase) -> Patient:
        t = await self.validate(token)
        patient = await self.patients.create_pending(payload, "qr-token")
        t.usage_count += 1
        t.used_at = self.clock()
        t.last_patient_id = patient.id
        if not t.reusable:
            t.used = True
        await self.s.commit()
        logger.info(f"Token {t.id} registered patient {patient.patient_code} (uses={t.usage_count})")
        await self.patients.acknowledge_registration(patient)
        return patient

    async def cleanup_expired(self) -> int:
        deleted = await self.repo.delete_expired(self.clock())
        await self.s.commit()
        logger.info(f"Removed {deleted} expired registration token(s)")
        return deleted

    async def get(self, token_id: uuid.UUID) -> QRRegistrationToken:
        t = await self.repo.get(token_id)
        if not t:
            raise NotFound("QR token not found")
        return t

    async def list(self, page: PageParams, status: str = "all"):
        return await self.repo.list(status=status, now=self.clock(), limit=page.limit, offset=page.offset)

    async def delete(self, token_id: uuid.UUID) -> None:
        t = await self.get(token_id)
        await self.repo.delete(t)
        await self.s.commit()

    def qr_code_png(self, t: QRRegistrationToken) -> bytes:
        return qr_png(registration_url(t))

    def qr_code_data_url(self, t: QRRegistrationToken) -> str:
        return "data:image/png;base64," + base64.b64encode(self.qr_code_png(t)).decode()
