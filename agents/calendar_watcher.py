from datetime import datetime
from models.calendar_event import CalendarEvent
from models.inbox_item import InboxStatus, InboxSource
from models.audit_log import AuditAction
from utils.time_utils import utc_now
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class CalendarWatcher:
    """Turns due calendar events into inbox captures, exactly once each"""

    def __init__(self, db):
        self.db = db

    def run_calendar_sweep(self, now: Optional[datetime] = None) -> dict:
        now = now or utc_now()

        events = self.db.get_due_calendar_events(now)
        if not events:
            logger.debug("No calendar events due")
            return {'events_due': 0, 'events_triggered': 0, 'errors': 0}

        triggered = 0
        errors = 0

        for event in events:
            try:
                if self._trigger(event):
                    triggered += 1
            except Exception as e:
                errors += 1
                logger.error(f"Calendar event {event.id} failed: {e}", exc_info=True)

        logger.info(f"Calendar sweep complete: {triggered}/{len(events)} events triggered")

        return {'events_due': len(events), 'events_triggered': triggered, 'errors': errors}

    def _trigger(self, event: CalendarEvent) -> bool:
        # Conditional flip first, so a second sweep never creates a duplicate capture
        if not self.db.complete_calendar_event(event.id):
            logger.info(f"Calendar event {event.id} already completed, skipping")
            return False

        content = f"{event.type}: {event.title}"
        if event.description:
            content += f" - {event.description}"

        item_id = self.db.create_inbox_item({
            "content": content,
            "source": InboxSource.CALENDAR,
            "status": InboxStatus.PENDING,
            "user_id": event.user_id,
        })

        self.db.create_audit_log({
            "action": AuditAction.CALENDAR_EVENT_TRIGGERED,
            "details": f'Calendar event "{event.title}" fired (inbox item {item_id})',
        })

        logger.info(f"Calendar event \"{event.title}\" -> inbox item {item_id}")
        return True
