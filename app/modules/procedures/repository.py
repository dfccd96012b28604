import uuid
from typing import Sequence
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from app.modules.procedures.models import Procedure

class ProcedureRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Procedure:
        obj = Procedure(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, procedure_id: uuid.UUID) -> Procedure | None:
        res = await self.session.execute(select(Procedure).where(Procedure.id == procedure_id))
        return res.scalar_one_or_none()

    async def get_many(self, ids: set[uuid.UUID]) -> dict[uuid.UUID, Procedure]:
        if not ids:
            return {}
        res = await self.session.execute(select(Procedure).where(Procedure.id.in_(ids)))
        return {p.id: p for p in res.scalars().all()}

    async def find_by_name(self, name: str) -> Procedure | None:
        q = select(Procedure).where(func.lower(Procedure.name) == name.strip().lower()).limit(1)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list(self, *, search: str | None = None, is_active: bool | None = None, category: str | None = None, limit: int = 50, offset: int = 0) -> tuple[Sequence[Procedure], int]:
        cond = []
        if search:
            like = f"%{search.lower()}%"
            cond.append(or_(func.lower(Procedure.name).like(like), func.lower(Procedure.description).like(like)))
        if is_active is not None:
            cond.append(Procedure.is_active.is_(is_active))
        if category:
            cond.append(Procedure.category == category)
        total = (await self.session.execute(select(func.count(Procedure.id)).where(*cond))).scalar_one()
        q = select(Procedure).where(*cond).order_by(Procedure.category, Procedure.name).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all(), total

    async def delete(self, obj: Procedure) -> None:
        await self.session.delete(obj)
        await self.session.flush()
