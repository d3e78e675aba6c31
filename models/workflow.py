from pydantic import BaseModel, ValidationError, field_validator
from typing import Optional, Dict, Any, List, Union, Literal
from datetime import datetime, timedelta
from enum import Enum
from models.entity import EntityType
import json


class WorkflowDecodeError(ValueError):
    """Raised when a stored workflow's conditions or actions cannot be decoded"""


class WorkflowTrigger(str, Enum):
    ON_CLASSIFY = "ON_CLASSIFY"
    SCHEDULE = "SCHEDULE"


class ScheduleInterval(str, Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"

    @property
    def duration(self) -> timedelta:
        return {
            ScheduleInterval.MINUTE: timedelta(minutes=1),
            ScheduleInterval.HOUR: timedelta(hours=1),
            ScheduleInterval.DAY: timedelta(days=1),
            ScheduleInterval.WEEK: timedelta(weeks=1),
        }[self]


class Conditions(BaseModel):
    """Flat trigger predicate. Absent fields always pass."""
    contains_keyword: Optional[str] = None
    type_is: Optional[str] = None
    interval: Optional[ScheduleInterval] = None  # SCHEDULE workflows only

    class Config:
        extra = "ignore"  # model_override, system_prompt, ... written by the UI builder

    @field_validator("interval", mode="before")
    @classmethod
    def _lowercase_interval(cls, value):
        return value.lower() if isinstance(value, str) else value


# Actions - closed set of variants, decoded once at fetch time

DEFAULT_NUDGE_TEMPLATE = (
    "Generate a 1-sentence strategic nudge to help the user take action on this. "
    "Keep it under 25 words."
)


class CreateEntityAction(BaseModel):
    kind: Literal["create_entity"] = "create_entity"
    entity_type: EntityType
    title: str = "Auto-created Item"


class NotifyAction(BaseModel):
    kind: Literal["notify"] = "notify"
    message: Optional[str] = None
    template: Optional[str] = None


class AiReasoningAction(BaseModel):
    kind: Literal["ai_reasoning"] = "ai_reasoning"
    prompt: str = ""
    model: Optional[str] = None


class AiNudgeAction(BaseModel):
    kind: Literal["ai_nudge"] = "ai_nudge"
    template: str = DEFAULT_NUDGE_TEMPLATE
    title: Optional[str] = None


class UnknownAction(BaseModel):
    """Action type this engine does not know. Executing it is a no-op."""
    kind: Literal["unknown"] = "unknown"
    type: str
    params: Dict[str, Any] = {}


Action = Union[CreateEntityAction, NotifyAction, AiReasoningAction, AiNudgeAction, UnknownAction]


def decode_action(raw: Dict[str, Any]) -> Action:
    """Decode one stored {type, params} action into its typed variant"""
    if not isinstance(raw, dict):
        raise WorkflowDecodeError(f"Action must be an object, got {type(raw).__name__}")

    action_type = str(raw.get("type") or "")
    params = raw.get("params") or {}
    if not isinstance(params, dict):
        raise WorkflowDecodeError(f"Action '{action_type}' params must be an object, got {type(params).__name__}")

    if action_type.startswith("create_"):
        kind = action_type[len("create_"):].upper()
        if kind in EntityType.__members__:
            return CreateEntityAction(
                entity_type=EntityType(kind),
                title=params.get("title") or "Auto-created Item",
            )
    elif action_type == "notify":
        return NotifyAction(message=params.get("message"), template=params.get("template"))
    elif action_type == "ai_reasoning":
        return AiReasoningAction(prompt=params.get("prompt") or "", model=params.get("model"))
    elif action_type == "ai_nudge":
        return AiNudgeAction(
            template=params.get("template") or DEFAULT_NUDGE_TEMPLATE,
            title=params.get("title"),
        )

    return UnknownAction(type=action_type, params=params)


def _load_json(value: Any, field: str) -> Any:
    if value is None or value == "":
        return None
    if isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, json.JSONDecodeError) as e:
        raise WorkflowDecodeError(f"Invalid JSON in {field}: {e}") from e


def decode_conditions(raw: Any) -> Conditions:
    data = _load_json(raw, "conditions") or {}
    if not isinstance(data, dict):
        raise WorkflowDecodeError("conditions must be a JSON object")
    try:
        return Conditions(**data)
    except ValidationError as e:
        raise WorkflowDecodeError(f"Invalid conditions: {e}") from e


def decode_actions(raw: Any) -> List[Action]:
    data = _load_json(raw, "actions") or []
    if not isinstance(data, list):
        raise WorkflowDecodeError("actions must be a JSON array")
    return [decode_action(item) for item in data]


class Workflow(BaseModel):
    """Workflow row as stored (conditions/actions are serialized blobs)"""
    id: str
    name: str
    trigger: WorkflowTrigger
    conditions: Optional[Any] = None
    actions: Optional[Any] = None
    is_active: bool = True
    last_run_at: Optional[datetime] = None
    user_id: Optional[str] = None

    class Config:
        from_attributes = True


class WorkflowDefinition(BaseModel):
    """Validated workflow with a typed predicate and an ordered action list"""
    id: str
    name: str
    trigger: WorkflowTrigger
    conditions: Conditions = Conditions()
    actions: List[Action] = []
    is_active: bool = True
    last_run_at: Optional[datetime] = None
    user_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Union[Workflow, Dict[str, Any]]) -> "WorkflowDefinition":
        workflow = row if isinstance(row, Workflow) else Workflow(**row)
        return cls(
            id=workflow.id,
            name=workflow.name,
            trigger=workflow.trigger,
            conditions=decode_conditions(workflow.conditions),
            actions=decode_actions(workflow.actions),
            is_active=workflow.is_active,
            last_run_at=workflow.last_run_at,
            user_id=workflow.user_id,
        )

    @property
    def interval(self) -> ScheduleInterval:
        return self.conditions.interval or ScheduleInterval.DAY
