import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.security import get_principal
from app.modules.dashboard.schemas import DashboardStatsOut, PatientStatsOut
from app.modules.dashboard.service import DashboardService

router = APIRouter()
def svc(s: AsyncSession = Depends(get_session)) -> DashboardService: return DashboardService(s)

@router.get("/dashboard/stats", response_model=DashboardStatsOut, dependencies=[Depends(get_principal)])
async def dashboard_stats(service: DashboardService = Depends(svc)):
    return {"stats": await service.clinic_stats()}

@router.get("/patients/{patient_id}/stats", response_model=PatientStatsOut, dependencies=[Depends(get_principal)])
async def patient_stats(patient_id: uuid.UUID, service: DashboardService = Depends(svc)):
    return {"stats": await service.patient_stats(patient_id)}
