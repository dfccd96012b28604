import uuid
from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.paging import PageParams, page_params, paginate
from app.core.security import get_principal
from app.modules.treatments.schemas import (
    TreatmentCreate, TreatmentUpdate, PaymentUpdate, TreatmentOut, TreatmentList, PaymentStatus,
)
from app.modules.treatments.service import TreatmentService

router = APIRouter()
def svc(s: AsyncSession = Depends(get_session)) -> TreatmentService: return TreatmentService(s)

@router.get("/treatments", response_model=TreatmentList, dependencies=[Depends(get_principal)])
async def list_treatments(
    start_date: date | None = None,
    end_date: date | None = None,
    payment_status: PaymentStatus | None = None,
    patient_id: uuid.UUID | None = None,
    page: PageParams = Depends(page_params),
    service: TreatmentService = Depends(svc),
):
    items, total = await service.list(page, start_date=start_date, end_date=end_date, payment_status=payment_status, patient_id=patient_id)
    return {"treatments": items, "pagination": paginate(page, total)}

@router.post("/treatments", response_model=TreatmentOut, status_code=201, dependencies=[Depends(get_principal)])
async def create_treatment(payload: TreatmentCreate, service: TreatmentService = Depends(svc)):
    return await service.create(payload)

@router.get("/treatments/{treatment_id}", response_model=TreatmentOut, dependencies=[Depends(get_principal)])
async def get_treatment(treatment_id: uuid.UUID, service: TreatmentService = Depends(svc)):
    return await service.get(treatment_id)

@router.put("/treatments/{treatment_id}", response_model=TreatmentOut, dependencies=[Depends(get_principal)])
async def update_treatment(treatment_id: uuid.UUID, payload: TreatmentUpdate, service: TreatmentService = Depends(svc)):
    return await service.update(treatment_id, payload)

@router.patch("/treatments/{treatment_id}/payment", response_model=TreatmentOut, dependencies=[Depends(get_principal)])
async def update_payment(treatment_id: uuid.UUID, payload: PaymentUpdate, service: TreatmentService = Depends(svc)):
    return await service.update_payment(treatment_id, payload)

@router.delete("/treatments/{treatment_id}", status_code=204, dependencies=[Depends(get_principal)])
async def delete_treatment(treatment_id: uuid.UUID, service: TreatmentService = Depends(svc)):
    await service.delete(treatment_id)
