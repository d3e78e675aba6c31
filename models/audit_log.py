from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class AuditAction:
    INBOX_CAPTURE = "INBOX_CAPTURE"
    AI_CLASSIFIED = "AI_CLASSIFIED"
    WORKFLOW_EXECUTED = "WORKFLOW_EXECUTED"
    WORKFLOW_FAILED = "WORKFLOW_FAILED"
    AI_NUDGE_GENERATED = "AI_NUDGE_GENERATED"
    CALENDAR_EVENT_TRIGGERED = "CALENDAR_EVENT_TRIGGERED"


class AuditLog(BaseModel):
    """Append-only record of an engine side effect"""
    id: str
    action: str  # See AuditAction
    details: str
    confidence: Optional[float] = None
    entity_id: Optional[str] = None
    workflow_id: Optional[str] = None
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True
