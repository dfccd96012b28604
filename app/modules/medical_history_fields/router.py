import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.security import get_principal
from app.modules.medical_history_fields.schemas import (
    MedicalHistoryFieldCreate, MedicalHistoryFieldUpdate, MedicalHistoryFieldOut, MedicalHistoryFieldList,
)
from app.modules.medical_history_fields.service import MedicalHistoryFieldService

router = APIRouter()
def svc(s: AsyncSession = Depends(get_session)) -> MedicalHistoryFieldService: return MedicalHistoryFieldService(s)

# public: the self-registration form renders these questions
@router.get("/medical-history-fields", response_model=MedicalHistoryFieldList)
async def list_fields(service: MedicalHistoryFieldService = Depends(svc)):
    return {"fields": await service.list()}

@router.get("/medical-history-fields/all", response_model=MedicalHistoryFieldList, dependencies=[Depends(get_principal)])
async def list_all_fields(service: MedicalHistoryFieldService = Depends(svc)):
    return {"fields": await service.list(include_inactive=True)}

@router.post("/medical-history-fields", response_model=MedicalHistoryFieldOut, status_code=201, dependencies=[Depends(get_principal)])
async def create_field(payload: MedicalHistoryFieldCreate, service: MedicalHistoryFieldService = Depends(svc)):
    return await service.create(payload)

@router.get("/medical-history-fields/{field_id}", response_model=MedicalHistoryFieldOut, dependencies=[Depends(get_principal)])
async def get_field(field_id: uuid.UUID, service: MedicalHistoryFieldService = Depends(svc)):
    return await service.get(field_id)

@router.put("/medical-history-fields/{field_id}", response_model=MedicalHistoryFieldOut, dependencies=[Depends(get_principal)])
async def update_field(field_id: uuid.UUID, payload: MedicalHistoryFieldUpdate, service: MedicalHistoryFieldService = Depends(svc)):
    return await service.update(field_id, payload)

@router.delete("/medical-history-fields/{field_id}", dependencies=[Depends(get_principal)])
async def delete_field(field_id: uuid.UUID, service: MedicalHistoryFieldService = Depends(svc)):
    await service.deactivate(field_id)
    return {"success": True}
