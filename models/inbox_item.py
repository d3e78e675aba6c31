from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from enum import Enum


class InboxStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    NEEDS_USER_REVIEW = "NEEDS_USER_REVIEW"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class InboxSource:
    """Sources written by the engine itself (receipts, nudges, narratives)"""
    AI_RECEIPT = "AI_RECEIPT"
    AI_COACH = "AI_COACH"
    AI_REASONING = "AI_REASONING"
    AI_ROUTING = "AI_ROUTING"
    SYSTEM_NUDGE = "SYSTEM_NUDGE"
    CALENDAR = "CALENDAR"


# Items from these sources are log/nudge messages - completed without classification
ENGINE_MESSAGE_SOURCES = {
    InboxSource.AI_RECEIPT,
    InboxSource.AI_COACH,
    InboxSource.AI_REASONING,
    InboxSource.AI_ROUTING,
    InboxSource.SYSTEM_NUDGE,
}


class InboxItem(BaseModel):
    id: str
    content: str
    source: str = "api"  # 'web-dashboard', 'AI_COACH', 'CALENDAR', ...
    status: InboxStatus = InboxStatus.PENDING
    confidence: Optional[float] = None  # 0.0 to 1.0
    processing_error: Optional[str] = None
    processed_entity_id: Optional[str] = None
    user_id: Optional[str] = None  # Unauthenticated capture allowed
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
