import uuid
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import Conflict, NotFound
from app.modules.medical_history_fields.models import MedicalHistoryField
from app.modules.medical_history_fields.repository import MedicalHistoryFieldRepository
from app.modules.medical_history_fields.schemas import MedicalHistoryFieldCreate, MedicalHistoryFieldUpdate

logger = logging.getLogger(__name__)

class MedicalHistoryFieldService:
    def __init__(self, s: AsyncSession):
        self.s = s
        self.repo = MedicalHistoryFieldRepository(s)

    async def list(self, include_inactive: bool = False):
        return await self.repo.list(include_inactive=include_inactive)

    async def get(self, field_id: uuid.UUID) -> MedicalHistoryField:
        obj = await self.repo.get(field_id)
        if not obj: raise NotFound("Medical history field not found")
        return obj

    async def create(self, payload: MedicalHistoryFieldCreate) -> MedicalHistoryField:
        if await self.repo.find_by_name(payload.field_name):
            raise Conflict("Medical history field with this name already exists")
        obj = await self.repo.create(**payload.model_dump())
        await self.s.commit()
        return obj

    async def update(self, field_id: uuid.UUID, payload: MedicalHistoryFieldUpdate) -> MedicalHistoryField:
        obj = await self.get(field_id)
        data = payload.model_dump(exclude_unset=True)
        if data.get("field_name"):
            other = await self.repo.find_by_name(data["field_name"])
            if other and other.id != obj.id:
                raise Conflict("Medical history field with this name already exists")
        for k, v in data.items():
            if v is not None:
                setattr(obj, k, v)
        await self.s.commit()
        return obj

    async def deactivate(self, field_id: uuid.UUID) -> MedicalHistoryField:
        # answers already stored on patients keep referring to the name
        obj = await self.get(field_id)
        obj.is_active = False
        await self.s.commit()
        logger.info(f"Medical history field '{obj.field_name}' deactivated")
        return obj
