"""Tests for the Coach nudge sweep"""
import pytest
from datetime import timedelta
from unittest.mock import Mock
from agents.coach import Coach
from models.inbox_item import InboxSource, InboxStatus
from prompts.prompt_manager import NO_NUDGE
from services.llm import MockProvider
from tests.fixtures.memory_store import InMemoryDatabase, BASE_TIME


NOW = BASE_TIME + timedelta(hours=1)


@pytest.fixture
def db():
    return InMemoryDatabase()


def test_active_project_gets_one_nudge(db):
    db.add_project("Website relaunch", summary="New marketing site")
    coach = Coach(db, MockProvider(text_response="Draft the homepage copy today."))

    result = coach.run_nudge_sweep(NOW)

    assert result['nudges_created'] == 1
    nudges = db.items_from(InboxSource.AI_COACH)
    assert len(nudges) == 1
    assert nudges[0]["content"] == 'NUDGE: "Website relaunch" Draft the homepage copy today.'
    assert nudges[0]["status"] == InboxStatus.PENDING.value
    assert nudges[0]["user_id"] == "user-1"


def test_project_prompt_includes_project_details(db):
    db.add_project("Website relaunch", summary="New marketing site")
    llm = Mock()
    llm.generate = Mock(return_value=NO_NUDGE)

    Coach(db, llm).run_nudge_sweep(NOW)

    prompt = llm.generate.call_args[0][0]
    assert "PROJECT: Website relaunch" in prompt
    assert "SUMMARY: New marketing site" in prompt
    assert NO_NUDGE in prompt


def test_no_nudge_sentinel_writes_nothing(db):
    db.add_project("Website relaunch")
    coach = Coach(db, MockProvider(text_response=NO_NUDGE))

    result = coach.run_nudge_sweep(NOW)

    assert result['nudges_created'] == 0
    assert db.inbox_items == []


def test_cooldown_prevents_repeat_nudges(db):
    db.add_project("Website relaunch")
    coach = Coach(db, MockProvider(), cooldown_hours=24)

    coach.run_nudge_sweep(NOW)
    second = coach.run_nudge_sweep(NOW + timedelta(hours=2))

    assert second['skipped_cooldown'] == 1
    assert len(db.items_from(InboxSource.AI_COACH)) == 1


def test_inactive_projects_are_ignored(db):
    db.add_project("Old thing", status="Archived")
    coach = Coach(db, MockProvider())

    result = coach.run_nudge_sweep(NOW)

    assert result['projects_checked'] == 0
    assert db.inbox_items == []
    assert db.audit_logs == []


def test_one_failing_project_does_not_block_others(db):
    db.add_project("First project")
    db.add_project("Second project")
    llm = Mock()
    llm.generate = Mock(side_effect=[RuntimeError("timeout"), "Ship the draft."])

    result = Coach(db, llm).run_nudge_sweep(NOW)

    assert result['errors'] == 1
    assert result['nudges_created'] == 1
    assert db.items_from(InboxSource.AI_COACH)[0]["content"].startswith('NUDGE: "Second project"')
