"""Tests for role allow-lists and WIP limits."""

from bidboard.errors.exceptions import CapacityError, PermissionDeniedError
from bidboard.models.board import column_adapter
from bidboard.models.enums import GateRule
from bidboard.models.proposal import Proposal
from bidboard.services.kanban.access_gate import can_move, decision_error, wip_advisory

PROPOSAL = Proposal(proposal_id="prop_gate", organization_id="org_test", proposal_name="Gate")


def _column(column_id: str, **fields):
    return column_adapter.validate_python(
        {"id": column_id, "label": column_id.title(), "type": "custom_stage", "order": 0, **fields}
    )


def test_unrestricted_move_allowed():
    decision = can_move(PROPOSAL, _column("draft"), _column("review"), "contributor", 0)
    assert decision.allowed
    assert decision.failed_rule is None


def test_protected_source():
    source = _column("final", can_drag_from_here_roles=["proposal_manager"])
    decision = can_move(PROPOSAL, source, _column("review"), "contributor", 0)
    assert not decision.allowed
    assert decision.failed_rule == GateRule.PROTECTED_SOURCE
    assert decision.details["required_roles"] == ["proposal_manager"]
    assert decision.details["actor_role"] == "contributor"


def test_restricted_destination():
    dest = _column("final", can_drag_to_here_roles=["organization_owner"])
    decision = can_move(PROPOSAL, _column("review"), dest, "lead_writer", 0)
    assert decision.failed_rule == GateRule.RESTRICTED_DESTINATION


def test_source_check_runs_first():
    source = _column("a", can_drag_from_here_roles=["organization_owner"])
    dest = _column("b", can_drag_to_here_roles=["organization_owner"])
    decision = can_move(PROPOSAL, source, dest, "viewer", 0)
    assert decision.failed_rule == GateRule.PROTECTED_SOURCE


def test_hard_wip_limit_reached():
    dest = _column("review", wip_limit=3, wip_limit_type="hard")
    decision = can_move(PROPOSAL, _column("draft"), dest, "proposal_manager", 3)
    assert not decision.allowed
    assert decision.failed_rule == GateRule.WIP_LIMIT_REACHED
    assert decision.details == {
        "proposal_id": "prop_gate",
        "column_id": "review",
        "column": "Review",
        "current": 3,
        "limit": 3,
    }
    assert isinstance(decision_error(decision), CapacityError)


def test_hard_wip_limit_below_capacity():
    dest = _column("review", wip_limit=3, wip_limit_type="hard")
    assert can_move(PROPOSAL, _column("draft"), dest, "contributor", 2).allowed


def test_hard_wip_limit_ignores_reorder_within_column():
    column = _column("review", wip_limit=3, wip_limit_type="hard")
    assert can_move(PROPOSAL, column, column, "contributor", 3).allowed


def test_zero_limit_is_disabled():
    dest = _column("review", wip_limit=0, wip_limit_type="hard")
    assert can_move(PROPOSAL, _column("draft"), dest, "contributor", 50).allowed


def test_soft_limit_never_blocks():
    dest = _column("review", wip_limit=1, wip_limit_type="soft")
    assert can_move(PROPOSAL, _column("draft"), dest, "contributor", 5).allowed


def test_soft_limit_advisory():
    dest = _column("review", wip_limit=2, wip_limit_type="soft")
    assert wip_advisory(dest, 2) is None
    advisory = wip_advisory(dest, 3)
    assert "(3/2)" in advisory


def test_no_advisory_for_hard_or_disabled_limits():
    assert wip_advisory(_column("a", wip_limit=2, wip_limit_type="hard"), 5) is None
    assert wip_advisory(_column("b", wip_limit=0), 5) is None


def test_role_denial_maps_to_permission_error():
    source = _column("final", can_drag_from_here_roles=["proposal_manager"])
    error = decision_error(can_move(PROPOSAL, source, _column("won"), "contributor", 0))
    assert isinstance(error, PermissionDeniedError)
    assert error.status_code == 403
