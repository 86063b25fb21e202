"""Tests for column assignment on type-specific and master boards."""

from bidboard.models.board import BoardConfig
from bidboard.models.enums import AssignmentRule
from bidboard.models.proposal import Proposal
from bidboard.services.kanban.resolver import assign_board, resolve, resolve_detailed


def _board(columns: list[dict], master: bool = False) -> BoardConfig:
    return BoardConfig.model_validate(
        {
            "board_id": "board_test",
            "organization_id": "org_test",
            "board_name": "Test Board",
            "board_type": "master" if master else "rfp",
            "is_master_board": master,
            "columns": [{**c, "order": i} for i, c in enumerate(columns)],
        }
    )


def _proposal(proposal_id: str = "prop_a", **fields) -> Proposal:
    return Proposal(proposal_id=proposal_id, organization_id="org_test", proposal_name=proposal_id, **fields)


TYPE_SPECIFIC = [
    {"id": "initiate", "label": "Initiate", "type": "locked_phase", "phase_mapping": "phase1"},
    {"id": "solicit", "label": "Solicit", "type": "locked_phase", "phase_mapping": "phase3"},
    {"id": "writing", "label": "Writing", "type": "custom_stage"},
    {"id": "drafting", "label": "Drafting", "type": "default_status", "default_status_mapping": "draft"},
    {"id": "submitted", "label": "Submitted", "type": "default_status",
     "default_status_mapping": "submitted", "is_terminal": True},
    {"id": "won", "label": "Won", "type": "default_status", "default_status_mapping": "won", "is_terminal": True},
]

MASTER = [
    {"id": "pipeline", "label": "Pipeline", "type": "master_status", "status_mapping": ["evaluating"]},
    {"id": "active", "label": "Active", "type": "master_status", "status_mapping": ["in_progress", "draft"]},
    {"id": "won", "label": "Won", "type": "master_status", "status_mapping": ["won"], "is_terminal": True},
]


class TestTypeSpecificRules:
    def test_stage_reference_takes_priority(self):
        board = _board(TYPE_SPECIFIC)
        proposal = _proposal(status="draft", current_phase="phase1", custom_workflow_stage_id="writing")
        result = resolve_detailed(proposal, board.columns, False)
        assert result.column_id == "writing"
        assert result.rule == AssignmentRule.CUSTOM_STAGE_REFERENCE

    def test_stage_reference_to_locked_phase_column(self):
        board = _board(TYPE_SPECIFIC)
        proposal = _proposal(status="evaluating", custom_workflow_stage_id="solicit")
        assert resolve(proposal, board.columns, False) == "solicit"

    def test_dangling_stage_reference_falls_through(self):
        board = _board(TYPE_SPECIFIC)
        proposal = _proposal(status="draft", custom_workflow_stage_id="deleted_column")
        result = resolve_detailed(proposal, board.columns, False)
        assert result.column_id == "drafting"
        assert result.rule == AssignmentRule.DEFAULT_STATUS

    def test_stage_reference_ignores_default_status_columns(self):
        board = _board(TYPE_SPECIFIC)
        proposal = _proposal(status="won", custom_workflow_stage_id="drafting")
        assert resolve(proposal, board.columns, False) == "won"

    def test_terminal_status_before_phase(self):
        board = _board(TYPE_SPECIFIC)
        proposal = _proposal(status="submitted", current_phase="phase3")
        result = resolve_detailed(proposal, board.columns, False)
        assert result.column_id == "submitted"
        assert result.rule == AssignmentRule.TERMINAL_STATUS

    def test_phase_match(self):
        board = _board(TYPE_SPECIFIC)
        proposal = _proposal(status="evaluating", current_phase="phase3")
        result = resolve_detailed(proposal, board.columns, False)
        assert result.column_id == "solicit"
        assert result.rule == AssignmentRule.CURRENT_PHASE

    def test_default_status_match(self):
        board = _board(TYPE_SPECIFIC)
        assert resolve(_proposal(status="draft"), board.columns, False) == "drafting"

    def test_no_match_is_unassigned(self):
        board = _board(TYPE_SPECIFIC)
        result = resolve_detailed(_proposal(status="archived"), board.columns, False)
        assert result.column_id is None
        assert not result.assigned
        assert "no column matches" in result.diagnostic

    def test_ambiguous_phase_is_unassigned(self):
        columns = TYPE_SPECIFIC + [
            {"id": "kickoff", "label": "Kickoff", "type": "locked_phase", "phase_mapping": "phase1"},
        ]
        board = _board(columns)
        result = resolve_detailed(_proposal(current_phase="phase1"), board.columns, False)
        assert result.column_id is None
        assert result.rule == AssignmentRule.CURRENT_PHASE
        assert "initiate" in result.diagnostic and "kickoff" in result.diagnostic

    def test_empty_board(self):
        result = resolve_detailed(_proposal(), [], False)
        assert result.column_id is None
        assert result.diagnostic == "board has no columns"


class TestMasterBoard:
    def test_status_mapping(self):
        board = _board(MASTER, master=True)
        result = resolve_detailed(_proposal(status="draft"), board.columns, True)
        assert result.column_id == "active"
        assert result.rule == AssignmentRule.MASTER_STATUS

    def test_stage_and_phase_are_ignored(self):
        board = _board(MASTER, master=True)
        proposal = _proposal(status="won", current_phase="phase1", custom_workflow_stage_id="pipeline")
        assert resolve(proposal, board.columns, True) == "won"

    def test_unclaimed_status_falls_back_to_first_column(self):
        board = _board(MASTER, master=True)
        result = resolve_detailed(_proposal(status="archived"), board.columns, True)
        assert result.column_id == "pipeline"
        assert result.rule == AssignmentRule.MASTER_FALLBACK
        assert "archived" in result.diagnostic

    def test_duplicate_claim_is_unassigned(self):
        columns = MASTER + [
            {"id": "drafts", "label": "Drafts", "type": "master_status", "status_mapping": ["draft"]},
        ]
        board = _board(columns, master=True)
        result = resolve_detailed(_proposal(status="draft"), board.columns, True)
        assert result.column_id is None
        assert "multiple columns" in result.diagnostic


class TestBoardAssignment:
    def test_every_proposal_lands_in_at_most_one_column(self):
        board = _board(TYPE_SPECIFIC)
        proposals = [
            _proposal("prop_1", status="draft"),
            _proposal("prop_2", current_phase="phase1"),
            _proposal("prop_3", status="won"),
            _proposal("prop_4", status="archived"),
        ]
        assignment = assign_board(board, proposals)
        placed = [p.proposal_id for members in assignment.members.values() for p in members]
        assert sorted(placed) == ["prop_1", "prop_2", "prop_3"]
        assert [p.proposal_id for p in assignment.unassigned] == ["prop_4"]
        assert len(assignment.diagnostics) == 1

    def test_members_sorted_by_manual_order_then_id(self):
        board = _board(TYPE_SPECIFIC)
        proposals = [
            _proposal("prop_c", status="draft", manual_order=1),
            _proposal("prop_b", status="draft", manual_order=0),
            _proposal("prop_a", status="draft", manual_order=1),
        ]
        assignment = assign_board(board, proposals)
        assert [p.proposal_id for p in assignment.members["drafting"]] == ["prop_b", "prop_a", "prop_c"]

    def test_terminal_column_shows_every_matching_status(self):
        board = _board(TYPE_SPECIFIC)
        staged = _proposal("prop_staged", status="won", custom_workflow_stage_id="writing")
        plain = _proposal("prop_plain", status="won")
        assignment = assign_board(board, [staged, plain])

        assert assignment.column_of("prop_staged") == "writing"
        visible = [p.proposal_id for p in assignment.visible_members("won")]
        assert visible == ["prop_plain", "prop_staged"]
        # Canonical membership is unchanged
        assert [p.proposal_id for p in assignment.members["won"]] == ["prop_plain"]

    def test_visible_members_of_unknown_column(self):
        assignment = assign_board(_board(TYPE_SPECIFIC), [])
        assert assignment.visible_members("nope") == []
