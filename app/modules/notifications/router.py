import uuid
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.security import get_principal
from app.modules.notifications.schemas import NotificationOut, NotificationList
from app.modules.notifications.service import NotificationsService

router = APIRouter()
def svc(s: AsyncSession = Depends(get_session)) -> NotificationsService: return NotificationsService(s)

@router.get("/notifications", response_model=NotificationList, dependencies=[Depends(get_principal)])
async def list_notifications(unread_only: bool = False, limit: int = Query(50, ge=1, le=200), service: NotificationsService = Depends(svc)):
    items = await service.list(unread_only=unread_only, limit=limit)
    return {"notifications": items, "unread_count": await service.unread_count()}

@router.post("/notifications/{notification_id}/read", response_model=NotificationOut, dependencies=[Depends(get_principal)])
async def mark_read(notification_id: uuid.UUID, service: NotificationsService = Depends(svc)):
    return await service.mark_read(notification_id)
