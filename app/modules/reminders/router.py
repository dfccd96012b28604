import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.base import utcnow
from app.core.db import get_session
from app.core.mailer import Mailer, get_mailer
from app.core.security import get_principal, require_admin_or_cron
from app.modules.reminders.schemas import (
    ReminderConfigCreate, ReminderConfigUpdate, ReminderConfigOut, ReminderConfigList,
    TestReminder, TestReminderResult, DispatchSummary, DispatcherStatus, ReminderLogOut,
)
from app.modules.reminders.service import ReminderConfigService, ReminderDispatcher

router = APIRouter()

def dispatcher(s: AsyncSession = Depends(get_session), mailer: Mailer | None = Depends(get_mailer)) -> ReminderDispatcher:
    return ReminderDispatcher(s, mailer)

def configs(s: AsyncSession = Depends(get_session), mailer: Mailer | None = Depends(get_mailer)) -> ReminderConfigService:
    return ReminderConfigService(s, mailer)

@router.post("/reminders/process", response_model=DispatchSummary, dependencies=[Depends(require_admin_or_cron)])
async def process_reminders(service: ReminderDispatcher = Depends(dispatcher)):
    results = await service.process()
    return {"message": "Reminder processing completed", "results": results, "processed_at": utcnow()}

@router.get("/reminders/process", response_model=DispatcherStatus, dependencies=[Depends(require_admin_or_cron)])
async def reminder_status(service: ReminderDispatcher = Depends(dispatcher)):
    return await service.status()

@router.get("/reminders/config", response_model=ReminderConfigList, dependencies=[Depends(get_principal)])
async def list_configs(service: ReminderConfigService = Depends(configs)):
    return await service.list_with_stats()

@router.post("/reminders/config", response_model=ReminderConfigOut, status_code=201, dependencies=[Depends(get_principal)])
async def create_config(payload: ReminderConfigCreate, service: ReminderConfigService = Depends(configs)):
    return await service.create(payload)

@router.put("/reminders/config/{config_id}", response_model=ReminderConfigOut, dependencies=[Depends(get_principal)])
async def update_config(config_id: uuid.UUID, payload: ReminderConfigUpdate, service: ReminderConfigService = Depends(configs)):
    return await service.update(config_id, payload)

@router.post("/reminders/config/{config_id}/test", response_model=TestReminderResult, dependencies=[Depends(get_principal)])
async def send_test_reminder(config_id: uuid.UUID, payload: TestReminder, service: ReminderConfigService = Depends(configs)):
    message_id, target = await service.send_test(config_id, payload.appointment_id, payload.test_email)
    return {"email_id": message_id, "sent_to": target}

@router.get("/reminders/logs/{appointment_id}", response_model=list[ReminderLogOut], dependencies=[Depends(get_principal)])
async def reminder_history(appointment_id: uuid.UUID, service: ReminderConfigService = Depends(configs)):
    return await service.history(appointment_id)
