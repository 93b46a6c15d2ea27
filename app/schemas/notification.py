# app/schemas/notification.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class NotificationOut(BaseModel):
    id: int
    recipient_id: str
    kind: str
    pass_id: Optional[str]
    message: str
    created_at: datetime

    class Config:
        from_attributes = True
