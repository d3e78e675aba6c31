from pydantic import BaseModel
from typing import Optional


class ExecutionContext(BaseModel):
    """Accumulator threaded through one action chain (not persisted)"""
    original_content: str
    reasoning_insights: str = ""  # Overwritten by each ai_reasoning action
    entity_type: str
    entity_id: Optional[str] = None


class ActionTarget(BaseModel):
    """The entity (and owner) an action chain runs against"""
    entity_id: Optional[str] = None  # None for scheduled runs
    entity_type: str
    user_id: Optional[str] = None
