from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class LinkType:
    GENERATED_BY = "GENERATED_BY"  # Entity created by a workflow action (new entity -> triggering entity)
    LOGGED_BY = "LOGGED_BY"  # Log entry produced on behalf of an entity
    RELATES_TO = "RELATES_TO"  # General connection between two entities


class Link(BaseModel):
    id: str
    source_id: str
    target_id: str
    type: str  # See LinkType
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
