import uuid
import logging
from sqlalchemy import select, exists
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import Conflict, NotFound
from app.core.paging import PageParams
from app.modules.procedures.models import Procedure
from app.modules.procedures.repository import ProcedureRepository
from app.modules.procedures.schemas import ProcedureCreate, ProcedureUpdate

logger = logging.getLogger(__name__)

class ProcedureService:
    def __init__(self, s: AsyncSession):
        self.s = s
        self.repo = ProcedureRepository(s)

    async def create(self, payload: ProcedureCreate) -> Procedure:
        if await self.repo.find_by_name(payload.name):
            raise Conflict("Procedure with this name already exists")
        obj = await self.repo.create(**payload.model_dump())
        await self.s.commit()
        return obj

    async def get(self, procedure_id: uuid.UUID) -> Procedure:
        obj = await self.repo.get(procedure_id)
        if not obj: raise NotFound("Procedure not found")
        return obj

    async def list(self, page: PageParams, **filters):
        return await self.repo.list(limit=page.limit, offset=page.offset, **filters)

    async def update(self, procedure_id: uuid.UUID, payload: ProcedureUpdate) -> Procedure:
        obj = await self.get(procedure_id)
        data = payload.model_dump(exclude_unset=True)
        if data.get("name"):
            other = await self.repo.find_by_name(data["name"])
            if other and other.id != obj.id:
                raise Conflict("Procedure with this name already exists")
        for k, v in data.items():
            setattr(obj, k, v)
        await self.s.commit()
        return obj

    async def delete(self, procedure_id: uuid.UUID) -> None:
        from app.modules.treatments.models import TreatmentProcedure
        obj = await self.get(procedure_id)
        used = await self.s.scalar(select(exists().where(TreatmentProcedure.procedure_id == obj.id)))
        if used:
            raise Conflict("Cannot delete procedure that is used in treatments. Consider deactivating it instead.")
        await self.repo.delete(obj)
        await self.s.commit()
        logger.info(f"Procedure '{obj.name}' deleted")
