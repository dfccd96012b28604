import re
import uuid
from typing import Sequence
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.patients.models import Patient

_CODE_RE = re.compile(r"P(\d+)")

class PatientRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def next_code(self) -> str:
        q = select(Patient.patient_code).order_by(Patient.created_at.desc()).limit(1)
        res = await self.session.execute(q)
        latest = res.scalar_one_or_none()
        number = 1
        if latest:
            m = _CODE_RE.match(latest)
            if m:
                number = int(m.group(1)) + 1
        return f"P{number:03d}"

    async def create(self, **data) -> Patient:
        if "patient_code" not in data:
            data["patient_code"] = await self.next_code()
        obj = Patient(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, patient_id: uuid.UUID) -> Patient | None:
        res = await self.session.execute(select(Patient).where(Patient.id == patient_id))
        return res.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Patient | None:
        q = select(Patient).where(func.lower(Patient.email) == email.lower()).limit(1)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    def _filters(self, search: str | None, registration_status: str | None) -> list:
        cond = []
        if search:
            like = f"%{search.lower()}%"
            cond.append(or_(
                func.lower(Patient.first_name).like(like),
                func.lower(Patient.last_name).like(like),
                func.lower(Patient.patient_code).like(like),
                func.lower(Patient.phone).like(like),
            ))
        if registration_status:
            cond.append(Patient.registration_status == registration_status)
        return cond

    async def list(self, *, search: str | None = None, registration_status: str | None = None, limit: int = 50, offset: int = 0) -> tuple[Sequence[Patient], int]:
        cond = self._filters(search, registration_status)
        total = (await self.session.execute(select(func.count(Patient.id)).where(*cond))).scalar_one()
        q = select(Patient).where(*cond).order_by(Patient.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all(), total

    async def update(self, obj: Patient, **data) -> Patient:
        for k, v in data.items():
            setattr(obj, k, v)
        await self.session.flush()
        return obj

    async def delete(self, obj: Patient) -> None:
        await self.session.delete(obj)
        await self.session.flush()
