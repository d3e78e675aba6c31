"""Scenario tests for WorkflowEngine inbox processing"""
import json
import pytest
from unittest.mock import Mock
from agents.workflow_engine import WorkflowEngine
from models.inbox_item import InboxSource, InboxStatus
from models.audit_log import AuditAction
from models.workflow import WorkflowTrigger
from services.llm import MockProvider, ProviderError
from tests.fixtures.memory_store import InMemoryDatabase


@pytest.fixture
def db():
    return InMemoryDatabase()


@pytest.fixture
def engine(db):
    return WorkflowEngine(db, MockProvider())


def test_confident_classification_creates_entity(engine, db):
    """Scenario A: 'Buy milk' is filed as ADMIN with no review"""
    item_id = db.add_inbox_item("Buy milk")

    result = engine.process_item(engine.db.get_pending_items()[0])

    assert result['status'] == "COMPLETED"
    item = db.item(item_id)
    assert item["status"] == InboxStatus.COMPLETED.value
    assert item["confidence"] == 0.95

    assert len(db.entities) == 1
    entity = db.entities[0]
    assert entity["type"] == "ADMIN"
    assert entity["user_id"] == "user-1"
    assert item["processed_entity_id"] == entity["id"]
    assert len(json.loads(entity["embedding"])) == 768
    assert len(db.metadata["admin_metadata"]) == 1

    assert len(db.audits(AuditAction.AI_CLASSIFIED)) == 1
    assert len(db.items_from(InboxSource.AI_RECEIPT)) == 1
    assert db.items_from(InboxSource.AI_REASONING)[0]["content"].startswith("REASONING: ")
    assert db.items_from(InboxSource.AI_ROUTING)[0]["content"].startswith("ROUTING: ")


def test_clarify_goes_to_review(engine, db):
    """Scenario B: no recognizable words -> NEEDS_USER_REVIEW with the question"""
    item_id = db.add_inbox_item("???")

    engine.process_pending_items()

    item = db.item(item_id)
    assert item["status"] == InboxStatus.NEEDS_USER_REVIEW.value
    assert item["processing_error"] == "Can you elaborate?"
    assert db.entities == []
    assert db.items_from(InboxSource.AI_ROUTING) == []
    assert len(db.items_from(InboxSource.AI_REASONING)) == 1


def test_low_confidence_goes_to_review(engine, db):
    item_id = db.add_inbox_item("Purple elephants dancing")

    engine.process_pending_items()

    item = db.item(item_id)
    assert item["status"] == InboxStatus.NEEDS_USER_REVIEW.value
    assert item["processing_error"] == "Low confidence (0.75). Suggested: IDEA"
    assert item["confidence"] == 0.75
    assert db.entities == []


def test_notify_workflow_runs_on_classify(engine, db):
    """Scenario C: a PROJECT capture fires a notify workflow exactly once"""
    db.add_workflow(
        "Project Alert",
        WorkflowTrigger.ON_CLASSIFY.value,
        conditions={"type_is": "PROJECT"},
        actions=[{"type": "notify", "params": {"template": "New project!"}}],
    )
    db.add_inbox_item("Launch the new marketing website")

    engine.process_pending_items()

    nudges = [i for i in db.items_from(InboxSource.AI_RECEIPT) if i["content"].startswith("WORKFLOW NUDGE")]
    assert [n["content"] for n in nudges] == ["WORKFLOW NUDGE: New project!"]
    assert len(db.audits(AuditAction.WORKFLOW_EXECUTED)) == 1


def test_non_matching_workflow_does_not_run(engine, db):
    db.add_workflow(
        "Project Alert",
        WorkflowTrigger.ON_CLASSIFY.value,
        conditions={"type_is": "PROJECT"},
        actions=[{"type": "notify", "params": {"message": "New project!"}}],
    )
    db.add_inbox_item("Buy milk")

    engine.process_pending_items()

    assert db.audits(AuditAction.WORKFLOW_EXECUTED) == []


def test_workflows_scoped_to_owner(engine, db):
    db.add_workflow(
        "Someone else's alert",
        WorkflowTrigger.ON_CLASSIFY.value,
        actions=[{"type": "notify", "params": {"message": "hi"}}],
        user_id="user-2",
    )
    db.add_inbox_item("Buy milk", user_id="user-1")

    engine.process_pending_items()

    assert db.audits(AuditAction.WORKFLOW_EXECUTED) == []


def test_enricher_chain_creates_linked_entity(db):
    llm = MockProvider(text_response="Budget and owner are unclear.")
    engine = WorkflowEngine(db, llm)
    db.add_workflow(
        "Project Enricher",
        WorkflowTrigger.ON_CLASSIFY.value,
        conditions={"type_is": "PROJECT"},
        actions=[
            {"type": "ai_reasoning", "params": {"prompt": "List the risks"}},
            {"type": "ai_nudge", "params": {"template": "{{reasoning}} What is the next step?"}},
            {"type": "create_project", "params": {"title": "Kickoff"}},
        ],
    )
    db.add_inbox_item("Plan the company offsite")

    engine.process_pending_items()

    source, generated = db.entities
    assert generated["title"] == "[AUTO] Kickoff"
    assert generated["content"] == "Budget and owner are unclear."
    assert db.links[0]["source_id"] == generated["id"]
    assert db.links[0]["target_id"] == source["id"]
    assert len(db.audits(AuditAction.AI_NUDGE_GENERATED)) == 1


def test_failing_workflow_is_audited_and_next_still_runs(db):
    llm = MockProvider()
    engine = WorkflowEngine(db, llm)
    db.add_workflow(
        "Broken reasoning",
        WorkflowTrigger.ON_CLASSIFY.value,
        actions=[
            {"type": "ai_reasoning", "params": {"prompt": "x"}},
            {"type": "notify", "params": {"message": "never"}},
        ],
    )
    db.add_workflow(
        "Healthy alert",
        WorkflowTrigger.ON_CLASSIFY.value,
        actions=[{"type": "notify", "params": {"message": "still here"}}],
    )
    db.add_inbox_item("Buy milk")

    # Classification works, any free-text generation fails
    original_generate = llm.generate

    def text_generation_fails(prompt, json_mode=False):
        if json_mode:
            return original_generate(prompt, json_mode=True)
        raise ProviderError("timeout")

    llm.generate = text_generation_fails

    engine.process_pending_items()

    failed = db.audits(AuditAction.WORKFLOW_FAILED)
    assert len(failed) == 1
    assert "Broken reasoning" in failed[0]["details"]

    executed = db.audits(AuditAction.WORKFLOW_EXECUTED)
    assert len(executed) == 1

    contents = [i["content"] for i in db.items_from(InboxSource.AI_RECEIPT)]
    assert "WORKFLOW NUDGE: still here" in contents
    assert "WORKFLOW NUDGE: never" not in contents


def test_classification_failure_marks_item_failed_and_batch_continues(db):
    llm = MockProvider()
    original_generate = llm.generate
    calls = {"n": 0}

    def flaky(prompt, json_mode=False):
        calls["n"] += 1
        if calls["n"] == 1:
            raise ProviderError("connection reset")
        return original_generate(prompt, json_mode)

    llm.generate = flaky
    engine = WorkflowEngine(db, llm)
    first = db.add_inbox_item("Launch the website")
    second = db.add_inbox_item("Buy milk")

    summary = engine.process_pending_items()

    assert db.item(first)["status"] == InboxStatus.FAILED.value
    assert "connection reset" in db.item(first)["processing_error"]
    assert db.item(second)["status"] == InboxStatus.COMPLETED.value
    assert summary['items_failed'] == 1
    assert summary['items_completed'] == 1


def test_engine_messages_complete_without_classification(db):
    llm = Mock()
    engine = WorkflowEngine(db, llm)
    item_id = db.add_inbox_item('NUDGE: "Website" Ship it', source=InboxSource.AI_COACH)

    engine.process_pending_items()

    assert db.item(item_id)["status"] == InboxStatus.COMPLETED.value
    assert db.entities == []
    llm.generate.assert_not_called()


def test_already_claimed_item_is_skipped(engine, db):
    db.add_inbox_item("Buy milk")
    item = db.get_pending_items()[0]
    db.claim_item(item.id)

    result = engine.process_item(item)

    assert result['status'] == 'skipped'
    assert db.entities == []


def test_batch_respects_size_and_order(engine, db):
    ids = [db.add_inbox_item(f"Buy item number {n}") for n in range(7)]

    summary = engine.process_pending_items(batch_size=5)

    assert summary['items_processed'] == 5
    assert [db.item(i)["status"] for i in ids[:5]] == [InboxStatus.COMPLETED.value] * 5
    assert [db.item(i)["status"] for i in ids[5:]] == [InboxStatus.PENDING.value] * 2


def test_empty_inbox(engine):
    summary = engine.process_pending_items()

    assert summary['items_processed'] == 0


def test_malformed_workflow_does_not_disable_the_others(engine, db):
    db.add_workflow(
        "Malformed",
        WorkflowTrigger.ON_CLASSIFY.value,
        actions=[{"type": "notify", "params": "oops"}],
    )
    db.add_workflow(
        "Healthy alert",
        WorkflowTrigger.ON_CLASSIFY.value,
        actions=[{"type": "notify", "params": {"message": "still here"}}],
    )
    db.add_inbox_item("Buy milk")

    engine.process_pending_items()

    executed = db.audits(AuditAction.WORKFLOW_EXECUTED)
    assert len(executed) == 1
    assert executed[0]["workflow_id"] == db.workflows[1]["id"]
    contents = [i["content"] for i in db.items_from(InboxSource.AI_RECEIPT)]
    assert "WORKFLOW NUDGE: still here" in contents
