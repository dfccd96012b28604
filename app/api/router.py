from fastapi import APIRouter
from app.modules.admin.router import router as auth_router
from app.modules.patients.router import router as patients_router
from app.modules.notifications.router import router as notifications_router
from app.modules.procedures.router import router as procedures_router
from app.modules.appointments.router import router as appointments_router
from app.modules.treatments.router import router as treatments_router
from app.modules.qr_tokens.router import router as qr_tokens_router
from app.modules.reminders.router import router as reminders_router
from app.modules.dashboard.router import router as dashboard_router
from app.modules.medical_history_fields.router import router as medical_history_fields_router

api_router = APIRouter()
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(patients_router, tags=["patients"])
api_router.include_router(notifications_router, tags=["notifications"])
api_router.include_router(procedures_router, tags=["procedures"])
api_router.include_router(appointments_router, tags=["appointments"])
api_router.include_router(treatments_router, tags=["treatments"])
api_router.include_router(qr_tokens_router, tags=["qr-tokens"])
api_router.include_router(reminders_router, tags=["reminders"])
api_router.include_router(dashboard_router, tags=["dashboard"])
api_router.include_router(medical_history_fields_router, tags=["medical-history-fields"])

@api_router.get("/health", tags=["health"])
async def health():
    return {"status": "ok"}
