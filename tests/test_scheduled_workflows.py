"""Tests for SCHEDULE workflows"""
import pytest
from unittest.mock import Mock
from datetime import datetime, timedelta, timezone
from agents.workflow_engine import WorkflowEngine
from models.audit_log import AuditAction
from models.inbox_item import InboxSource
from models.workflow import WorkflowDefinition, WorkflowTrigger
from services.llm import MockProvider, ProviderError
from tests.fixtures.memory_store import InMemoryDatabase


NOW = datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    return InMemoryDatabase()


@pytest.fixture
def engine(db):
    return WorkflowEngine(db, MockProvider(text_response="Review your week."))


def minute_workflow(last_run_at):
    return WorkflowDefinition.from_row({
        "id": "wf-1",
        "name": "Every minute",
        "trigger": "SCHEDULE",
        "conditions": {"interval": "minute"},
        "actions": [],
        "last_run_at": last_run_at,
    })


def test_is_due_minute_interval():
    """Scenario D: due 90s after the last run, not due after 10s"""
    assert WorkflowEngine.is_due(minute_workflow(NOW - timedelta(seconds=90)), NOW)
    assert not WorkflowEngine.is_due(minute_workflow(NOW - timedelta(seconds=10)), NOW)


def test_never_run_workflow_is_due():
    assert WorkflowEngine.is_due(minute_workflow(None), NOW)


def test_naive_last_run_treated_as_utc():
    naive = (NOW - timedelta(seconds=90)).replace(tzinfo=None)

    assert WorkflowEngine.is_due(minute_workflow(naive), NOW)


def test_due_workflow_runs_and_records_last_run(engine, db):
    workflow_id = db.add_workflow(
        "Weekly review",
        WorkflowTrigger.SCHEDULE.value,
        conditions={"interval": "minute"},
        actions=[{"type": "notify", "params": {"message": "Time for a review"}}],
        last_run_at=NOW - timedelta(seconds=90),
    )

    ran = engine.run_scheduled_workflows(NOW)

    assert ran == 1
    assert db.workflows[0]["last_run_at"] == NOW
    assert [i["content"] for i in db.items_from(InboxSource.AI_RECEIPT)] == [
        "WORKFLOW NUDGE: Time for a review"
    ]
    executed = db.audits(AuditAction.WORKFLOW_EXECUTED)
    assert len(executed) == 1
    assert executed[0]["workflow_id"] == workflow_id


def test_not_due_workflow_writes_nothing(engine, db):
    db.add_workflow(
        "Weekly review",
        WorkflowTrigger.SCHEDULE.value,
        conditions={"interval": "minute"},
        actions=[{"type": "notify", "params": {"message": "Time for a review"}}],
        last_run_at=NOW - timedelta(seconds=10),
    )

    assert engine.run_scheduled_workflows(NOW) == 0
    assert db.inbox_items == []
    assert db.audit_logs == []


def test_scheduled_run_only_executes_notify_and_nudge(engine, db):
    db.add_workflow(
        "Daily coach",
        WorkflowTrigger.SCHEDULE.value,
        conditions={"interval": "day"},
        actions=[
            {"type": "create_project", "params": {"title": "Should not exist"}},
            {"type": "ai_nudge", "params": {"template": "Nudge me about my week"}},
        ],
    )

    engine.run_scheduled_workflows(NOW)

    assert db.entities == []
    assert db.links == []
    assert [i["content"] for i in db.items_from(InboxSource.AI_COACH)] == ["COACH NUDGE: Review your week."]
    assert len(db.audits(AuditAction.AI_NUDGE_GENERATED)) == 1


def test_second_run_in_same_interval_is_skipped(engine, db):
    db.add_workflow(
        "Hourly",
        WorkflowTrigger.SCHEDULE.value,
        conditions={"interval": "hour"},
        actions=[{"type": "notify", "params": {"message": "ping"}}],
    )

    assert engine.run_scheduled_workflows(NOW) == 1
    assert engine.run_scheduled_workflows(NOW + timedelta(minutes=30)) == 0
    assert engine.run_scheduled_workflows(NOW + timedelta(hours=1)) == 1


def test_on_classify_workflows_are_not_scheduled(engine, db):
    db.add_workflow(
        "Project Alert",
        WorkflowTrigger.ON_CLASSIFY.value,
        actions=[{"type": "notify", "params": {"message": "New project!"}}],
    )

    assert engine.run_scheduled_workflows(NOW) == 0


def test_failed_scheduled_run_waits_a_full_interval(db):
    llm = MockProvider()
    llm.generate = Mock(side_effect=ProviderError("provider down"))
    engine = WorkflowEngine(db, llm)
    db.add_workflow(
        "Hourly coach",
        WorkflowTrigger.SCHEDULE.value,
        conditions={"interval": "hour"},
        actions=[{"type": "ai_nudge", "params": {}}],
    )

    assert engine.run_scheduled_workflows(NOW) == 0
    assert db.workflows[0]["last_run_at"] == NOW
    assert len(db.audits(AuditAction.WORKFLOW_FAILED)) == 1

    engine.run_scheduled_workflows(NOW + timedelta(seconds=30))
    assert len(db.audits(AuditAction.WORKFLOW_FAILED)) == 1

    engine.run_scheduled_workflows(NOW + timedelta(hours=1))
    assert len(db.audits(AuditAction.WORKFLOW_FAILED)) == 2
