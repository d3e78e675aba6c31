from supabase import create_client, Client
from config import settings
from typing import List, Optional, Dict, Any
from models.inbox_item import InboxItem, InboxStatus
from models.entity import Entity, EntityType, METADATA_TABLES
from models.calendar_event import CalendarEvent
from models.workflow import WorkflowDefinition, WorkflowTrigger, WorkflowDecodeError
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so `value` matches literally"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DatabaseService:
    def __init__(self, client: Optional[Client] = None):
        if client is None:
            if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
                raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
            client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        self.client: Client = client

    # Inbox Items
    def get_pending_items(self, limit: int = 5) -> List[InboxItem]:
        """Fetch PENDING inbox items in creation order"""
        response = (
            self.client.table("inbox_item")
            .select("*")
            .eq("status", InboxStatus.PENDING.value)
            .order("created_at", desc=False)
            .limit(limit)
            .execute()
        )

        return [InboxItem(**item) for item in response.data]

    def claim_item(self, item_id: str) -> bool:
        """Flip PENDING -> PROCESSING; False if another worker got there first"""
        response = (
            self.client.table("inbox_item")
            .update({"status": InboxStatus.PROCESSING.value})
            .eq("id", item_id)
            .eq("status", InboxStatus.PENDING.value)
            .execute()
        )
        return bool(response.data)

    def update_item(self, item_id: str, updates: Dict[str, Any]):
        """Update inbox item fields (status, confidence, processing_error, ...)"""
        if isinstance(updates.get("status"), InboxStatus):
            updates = {**updates, "status": updates["status"].value}
        self.client.table("inbox_item").update(updates).eq("id", item_id).execute()

    def create_inbox_item(self, item_data: dict) -> str:
        """Create inbox item, return ID"""
        if isinstance(item_data.get("status"), InboxStatus):
            item_data = {**item_data, "status": item_data["status"].value}
        response = self.client.table("inbox_item").insert(item_data).execute()
        return response.data[0]["id"]

    def find_recent_inbox_item(
        self, source: str, contains: str, since: datetime
    ) -> Optional[InboxItem]:
        """Most recent item from `source` whose content mentions `contains` since `since`"""
        response = (
            self.client.table("inbox_item")
            .select("*")
            .eq("source", source)
            .ilike("content", f"%{escape_like(contains)}%")
            .gt("created_at", since.isoformat())
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        return InboxItem(**response.data[0]) if response.data else None

    # Entities
    def create_entity(self, entity_data: dict, metadata: Optional[dict] = None) -> str:
        """Create new entity (plus its type-specific metadata row), return ID"""
        entity_type = entity_data.get("type")
        if isinstance(entity_type, EntityType):
            entity_data = {**entity_data, "type": entity_type.value}

        response = self.client.table("entity").insert(entity_data).execute()
        entity_id = response.data[0]["id"]

        metadata_table = METADATA_TABLES.get(EntityType(entity_data["type"]))
        if metadata is not None and metadata_table:
            self.client.table(metadata_table).insert({**metadata, "entity_id": entity_id}).execute()

        return entity_id

    def get_active_projects(self, user_id: Optional[str] = None) -> List[Entity]:
        """PROJECT entities whose status is Active"""
        query = (
            self.client.table("entity")
            .select("*")
            .eq("type", EntityType.PROJECT.value)
            .ilike("status", "active")
        )
        if user_id:
            query = query.eq("user_id", user_id)
        response = query.order("created_at", desc=False).execute()
        return [Entity(**e) for e in response.data] if response.data else []

    # Links
    def create_link(self, link_data: dict) -> str:
        """Create new link, return ID"""
        response = self.client.table("link").insert(link_data).execute()
        return response.data[0]["id"]

    # Workflows
    def get_active_workflows(
        self, trigger: WorkflowTrigger, user_id: Optional[str] = None
    ) -> List[WorkflowDefinition]:
        """Active workflows for a trigger, decoded; undecodable rows are skipped

        Scoped to `user_id` when given. Listing order (created_at) is the
        execution order - there is no priority between workflows.
        """
        query = (
            self.client.table("workflow")
            .select("*")
            .eq("is_active", True)
            .eq("trigger", trigger.value)
        )
        if user_id:
            query = query.eq("user_id", user_id)
        response = query.order("created_at", desc=False).execute()

        workflows = []
        for row in response.data or []:
            try:
                workflows.append(WorkflowDefinition.from_row(row))
            except (WorkflowDecodeError, ValueError) as e:
                logger.error(f"Skipping workflow {row.get('id')} ({row.get('name')}): {e}")
        return workflows

    def update_workflow_last_run(self, workflow_id: str, last_run_at: datetime):
        """Record when a SCHEDULE workflow last ran"""
        self.client.table("workflow").update({"last_run_at": last_run_at.isoformat()}).eq(
            "id", workflow_id
        ).execute()

    # Audit Log
    def create_audit_log(self, audit_data: dict) -> str:
        """Append audit log entry, return ID"""
        response = self.client.table("audit_log").insert(audit_data).execute()
        return response.data[0]["id"]

    # Calendar Events
    def get_due_calendar_events(self, now: datetime) -> List[CalendarEvent]:
        """PENDING calendar events scheduled at or before `now`"""
        response = (
            self.client.table("calendar_event")
            .select("*")
            .eq("status", "PENDING")
            .lte("scheduled_at", now.isoformat())
            .order("scheduled_at", desc=False)
            .execute()
        )
        return [CalendarEvent(**e) for e in response.data] if response.data else []

    def complete_calendar_event(self, event_id: str) -> bool:
        """Flip PENDING -> COMPLETED; False if it was already completed"""
        response = (
            self.client.table("calendar_event")
            .update({"status": "COMPLETED"})
            .eq("id", event_id)
            .eq("status", "PENDING")
            .execute()
        )
        return bool(response.data)
