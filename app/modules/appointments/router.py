import uuid
from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.mailer import Mailer, get_mailer
from app.core.paging import PageParams, page_params, paginate
from app.core.security import get_principal
from app.modules.appointments.schemas import (
    AppointmentCreate, AppointmentUpdate, AppointmentOut, AppointmentList,
    AppointmentStatus, Availability, NotifyResult,
)
from app.modules.appointments.service import AppointmentService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session)) -> AppointmentService:
    return AppointmentService(session)

# fixed paths first so "availability" is never parsed as an id
@router.get("/appointments/availability", response_model=Availability, dependencies=[Depends(get_principal)])
async def get_availability(
    date: date,
    duration: int = Query(60, ge=15, le=480),
    service: AppointmentService = Depends(svc),
):
    return await service.availability(date, duration)

@router.delete("/appointments/availability/cache", dependencies=[Depends(get_principal)])
async def clear_availability_cache(service: AppointmentService = Depends(svc)):
    return {"success": True, "cleared": await service.clear_availability_cache()}

@router.get("/appointments", response_model=AppointmentList, dependencies=[Depends(get_principal)])
async def list_appointments(
    start_date: date | None = None,
    end_date: date | None = None,
    status: AppointmentStatus | None = None,
    patient_id: uuid.UUID | None = None,
    page: PageParams = Depends(page_params),
    service: AppointmentService = Depends(svc),
):
    items, total = await service.list(page, start_date=start_date, end_date=end_date, status=status, patient_id=patient_id)
    return {"appointments": items, "pagination": paginate(page, total)}

@router.post("/appointments", response_model=AppointmentOut, status_code=201, dependencies=[Depends(get_principal)])
async def create_appointment(payload: AppointmentCreate, service: AppointmentService = Depends(svc)):
    return await service.create(payload)

@router.get("/appointments/{appt_id}", response_model=AppointmentOut, dependencies=[Depends(get_principal)])
async def get_appointment(appt_id: uuid.UUID, service: AppointmentService = Depends(svc)):
    return await service.get(appt_id)

@router.put("/appointments/{appt_id}", response_model=AppointmentOut, dependencies=[Depends(get_principal)])
async def update_appointment(appt_id: uuid.UUID, payload: AppointmentUpdate, service: AppointmentService = Depends(svc)):
    return await service.update(appt_id, payload)

@router.delete("/appointments/{appt_id}", response_model=AppointmentOut, dependencies=[Depends(get_principal)])
async def cancel_appointment(appt_id: uuid.UUID, service: AppointmentService = Depends(svc)):
    return await service.cancel(appt_id)

@router.post("/appointments/{appt_id}/notify", response_model=NotifyResult, dependencies=[Depends(get_principal)])
async def notify_patient(appt_id: uuid.UUID, service: AppointmentService = Depends(svc), mailer: Mailer | None = Depends(get_mailer)):
    return {"email_id": await service.notify(appt_id, mailer)}
