"""Tests for checklist progress and the action-required flag."""

from datetime import datetime, timezone

import pytest

from bidboard.errors.exceptions import NotFoundError, ValidationError
from bidboard.models.board import column_adapter
from bidboard.models.proposal import ChecklistEntry, Proposal
from bidboard.services.kanban.checklist import (
    action_required_fields,
    carry_checklist_state,
    is_action_required,
    outstanding_items,
    set_item_completion,
)

REVIEW = column_adapter.validate_python(
    {
        "id": "review",
        "label": "Review",
        "type": "custom_stage",
        "order": 3,
        "checklist_items": [
            {"id": "red_team", "label": "Red Team Review", "required": True, "order": 0},
            {"id": "compliance", "label": "Compliance Check", "required": True, "order": 1},
            {"id": "signoff", "label": "Sign-off", "required": True, "order": 2},
            {"id": "optional", "label": "Nice to have", "required": False, "order": 3},
            {"id": "score", "label": "Match Score", "required": True, "kind": "system_check", "order": 4},
        ],
    }
)


def _proposal(checklist: dict | None = None) -> Proposal:
    return Proposal(
        proposal_id="prop_ck",
        organization_id="org_test",
        proposal_name="Checklist",
        custom_workflow_stage_id="review",
        current_stage_checklist_status=checklist or {},
    )


def _done(*item_ids: str) -> dict:
    return {i: ChecklistEntry(completed=True, completed_by="usr_1") for i in item_ids}


def test_outstanding_skips_optional_and_system_items():
    items = outstanding_items(_proposal(), REVIEW)
    assert [i.id for i in items] == ["red_team", "compliance", "signoff"]


def test_action_required_clears_when_required_items_done():
    proposal = _proposal({"review": _done("red_team", "compliance", "signoff")})
    assert not is_action_required(proposal, REVIEW)
    assert action_required_fields(proposal, REVIEW) == {
        "action_required": False,
        "action_required_description": None,
    }


def test_action_required_description_lists_outstanding():
    proposal = _proposal({"review": _done("red_team", "compliance")})
    fields = action_required_fields(proposal, REVIEW)
    assert fields["action_required"] is True
    assert fields["action_required_description"] == (
        "1 required checklist item outstanding in Review: Sign-off"
    )


def test_reentry_preserves_previous_progress():
    status = {"review": _done("red_team", "compliance"), "writing": {}}
    carried = carry_checklist_state(status, "review")
    assert carried["review"] == status["review"]
    assert set(carried["review"]) == {"red_team", "compliance"}


def test_first_entry_starts_empty_and_keeps_other_columns():
    status = {"review": _done("red_team")}
    carried = carry_checklist_state(status, "final")
    assert carried["final"] == {}
    assert carried["review"] == status["review"]
    # The input is not mutated
    assert "final" not in status


def test_set_item_completion_records_actor_and_time():
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    fields = set_item_completion(_proposal(), REVIEW, "red_team", True, "usr_9", now=now)
    entry = fields["current_stage_checklist_status"]["review"]["red_team"]
    assert entry.completed is True
    assert entry.completed_by == "usr_9"
    assert entry.completed_at == now
    assert fields["action_required"] is True


def test_set_item_incomplete_clears_metadata():
    proposal = _proposal({"review": _done("red_team", "compliance", "signoff")})
    fields = set_item_completion(proposal, REVIEW, "signoff", False, "usr_9")
    entry = fields["current_stage_checklist_status"]["review"]["signoff"]
    assert entry.completed is False
    assert entry.completed_by is None
    assert entry.completed_at is None
    assert fields["action_required"] is True


def test_system_check_cannot_be_toggled():
    with pytest.raises(ValidationError):
        set_item_completion(_proposal(), REVIEW, "score", True, "usr_9")


def test_unknown_item():
    with pytest.raises(NotFoundError):
        set_item_completion(_proposal(), REVIEW, "missing", True, "usr_9")
