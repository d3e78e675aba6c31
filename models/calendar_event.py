from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class CalendarEvent(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    type: str = "TASK"
    scheduled_at: datetime
    status: str = "PENDING"  # 'PENDING', 'COMPLETED'
    user_id: Optional[str] = None

    class Config:
        from_attributes = True
