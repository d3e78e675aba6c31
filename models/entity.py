from pydantic import BaseModel
from typing import Optional, Union
from datetime import datetime
from enum import Enum
from pydantic.alias_generators import to_camel


class EntityType(str, Enum):
    PROJECT = "PROJECT"
    PERSON = "PERSON"
    IDEA = "IDEA"
    ADMIN = "ADMIN"

    # Legacy types (kept readable, never produced by the classifier)
    NOTE = "NOTE"
    RESOURCE = "RESOURCE"
    CONTACT = "CONTACT"


class ProjectMetadata(BaseModel):
    status: Optional[str] = "Active"
    outcome: Optional[str] = None
    next_action: Optional[str] = None
    budget: Optional[Union[float, str]] = None
    risk_level: Optional[str] = None

    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel


class PersonMetadata(BaseModel):
    role: Optional[str] = None
    company: Optional[str] = None
    email: Optional[str] = None
    last_contacted: Optional[str] = None

    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel


class IdeaMetadata(BaseModel):
    potential: Optional[str] = None  # 'HIGH', 'MEDIUM', 'LOW'
    impact_score: Optional[float] = None
    effort_score: Optional[float] = None

    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel


class AdminMetadata(BaseModel):
    category: Optional[str] = None
    importance: Optional[str] = None
    expiry_date: Optional[str] = None

    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel


# Metadata sub-table per entity type
METADATA_TABLES = {
    EntityType.PROJECT: "project_metadata",
    EntityType.PERSON: "person_metadata",
    EntityType.IDEA: "idea_metadata",
    EntityType.ADMIN: "admin_metadata",
}


class Entity(BaseModel):
    id: str
    title: str
    content: str = ""
    type: EntityType
    intent: Optional[str] = None
    summary: Optional[str] = None
    status: Optional[str] = None
    confidence: Optional[float] = None
    embedding: Optional[str] = None  # JSON-serialized vector
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
