import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.paging import PageParams, page_params, paginate
from app.core.security import get_principal
from app.modules.procedures.schemas import ProcedureCreate, ProcedureUpdate, ProcedureOut, ProcedureList
from app.modules.procedures.service import ProcedureService

router = APIRouter()
def svc(s: AsyncSession = Depends(get_session)) -> ProcedureService: return ProcedureService(s)

@router.get("/procedures", response_model=ProcedureList, dependencies=[Depends(get_principal)])
async def list_procedures(
    search: str | None = None, is_active: bool | None = None, category: str | None = None,
    page: PageParams = Depends(page_params), service: ProcedureService = Depends(svc),
):
    items, total = await service.list(page, search=search, is_active=is_active, category=category)
    return {"procedures": items, "pagination": paginate(page, total)}

@router.post("/procedures", response_model=ProcedureOut, status_code=201, dependencies=[Depends(get_principal)])
async def create_procedure(payload: ProcedureCreate, service: ProcedureService = Depends(svc)):
    return await service.create(payload)

@router.get("/procedures/{procedure_id}", response_model=ProcedureOut, dependencies=[Depends(get_principal)])
async def get_procedure(procedure_id: uuid.UUID, service: ProcedureService = Depends(svc)):
    return await service.get(procedure_id)

@router.put("/procedures/{procedure_id}", response_model=ProcedureOut, dependencies=[Depends(get_principal)])
async def update_procedure(procedure_id: uuid.UUID, payload: ProcedureUpdate, service: ProcedureService = Depends(svc)):
    return await service.update(procedure_id, payload)

@router.delete("/procedures/{procedure_id}", status_code=204, dependencies=[Depends(get_principal)])
async def delete_procedure(procedure_id: uuid.UUID, service: ProcedureService = Depends(svc)):
    await service.delete(procedure_id)
