import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.mailer import Mailer, get_mailer
from app.core.paging import PageParams, page_params, paginate
from app.core.security import get_principal
from app.modules.patients.schemas import (
    PatientCreate, PatientUpdate, PatientOut, PatientList, PatientDeny,
    PatientSelfRegistration, RegistrationReceipt, RegistrationStatus,
)
from app.modules.patients.service import PatientService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), mailer: Mailer | None = Depends(get_mailer)) -> PatientService:
    return PatientService(session, mailer)

@router.post("/patients", response_model=PatientOut, status_code=201, dependencies=[Depends(get_principal)])
async def create_patient(payload: PatientCreate, service: PatientService = Depends(svc)):
    return await service.create(payload)

@router.get("/patients", response_model=PatientList, dependencies=[Depends(get_principal)])
async def list_patients(
    search: str | None = None,
    registration_status: RegistrationStatus | None = None,
    page: PageParams = Depends(page_params),
    service: PatientService = Depends(svc),
):
    items, total = await service.list(page, search=search, registration_status=registration_status)
    return {"patients": items, "pagination": paginate(page, total)}

@router.post("/patients/register", response_model=RegistrationReceipt, status_code=201)
async def register_patient(payload: PatientSelfRegistration, service: PatientService = Depends(svc)):
    obj = await service.register(payload)
    return {"message": "Registration submitted successfully", "patient_id": obj.id, "patient_code": obj.patient_code}

@router.get("/patients/{patient_id}", response_model=PatientOut, dependencies=[Depends(get_principal)])
async def get_patient(patient_id: uuid.UUID, service: PatientService = Depends(svc)):
    return await service.get(patient_id)

@router.put("/patients/{patient_id}", response_model=PatientOut, dependencies=[Depends(get_principal)])
async def update_patient(patient_id: uuid.UUID, payload: PatientUpdate, service: PatientService = Depends(svc)):
    return await service.update(patient_id, payload)

@router.delete("/patients/{patient_id}", dependencies=[Depends(get_principal)])
async def delete_patient(patient_id: uuid.UUID, service: PatientService = Depends(svc)):
    obj = await service.delete(patient_id)
    return {
        "success": True,
        "message": f"Patient {obj.full_name} ({obj.patient_code}) has been deleted",
    }

@router.post("/patients/{patient_id}/approve", response_model=PatientOut, dependencies=[Depends(get_principal)])
async def approve_patient(patient_id: uuid.UUID, service: PatientService = Depends(svc)):
    return await service.approve(patient_id)

@router.post("/patients/{patient_id}/deny", response_model=PatientOut, dependencies=[Depends(get_principal)])
async def deny_patient(patient_id: uuid.UUID, payload: PatientDeny, service: PatientService = Depends(svc)):
    return await service.deny(patient_id, payload.reason)
