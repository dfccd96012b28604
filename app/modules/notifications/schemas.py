import uuid
from datetime import datetime
from pydantic import BaseModel

class NotificationOut(BaseModel):
    id: uuid.UUID
    type: str
    title: str
    message: str
    is_read: bool
    patient_id: uuid.UUID | None
    created_at: datetime
    class Config: from_attributes = True

class NotificationList(BaseModel):
    notifications: list[NotificationOut]
    unread_count: int
