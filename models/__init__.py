# Models module - Pydantic models for all database tables
from models.inbox_item import InboxItem, InboxStatus, InboxSource, ENGINE_MESSAGE_SOURCES
from models.entity import (
    Entity,
    EntityType,
    ProjectMetadata,
    PersonMetadata,
    IdeaMetadata,
    AdminMetadata,
)
from models.link import Link, LinkType
from models.audit_log import AuditLog, AuditAction
from models.calendar_event import CalendarEvent
from models.workflow import (
    Workflow,
    WorkflowDefinition,
    WorkflowTrigger,
    WorkflowDecodeError,
    Conditions,
    ScheduleInterval,
    CreateEntityAction,
    NotifyAction,
    AiReasoningAction,
    AiNudgeAction,
    UnknownAction,
)
from models.classification import (
    ClassificationResult,
    ProjectClassification,
    PersonClassification,
    IdeaClassification,
    AdminClassification,
    ClarifyClassification,
)
from models.execution_context import ExecutionContext, ActionTarget

__all__ = [
    "InboxItem",
    "InboxStatus",
    "InboxSource",
    "ENGINE_MESSAGE_SOURCES",
    "Entity",
    "EntityType",
    "ProjectMetadata",
    "PersonMetadata",
    "IdeaMetadata",
    "AdminMetadata",
    "Link",
    "LinkType",
    "AuditLog",
    "AuditAction",
    "CalendarEvent",
    "Workflow",
    "WorkflowDefinition",
    "WorkflowTrigger",
    "WorkflowDecodeError",
    "Conditions",
    "ScheduleInterval",
    "CreateEntityAction",
    "NotifyAction",
    "AiReasoningAction",
    "AiNudgeAction",
    "UnknownAction",
    "ClassificationResult",
    "ProjectClassification",
    "PersonClassification",
    "IdeaClassification",
    "AdminClassification",
    "ClarifyClassification",
    "ExecutionContext",
    "ActionTarget",
]
