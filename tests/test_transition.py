"""Tests for the move transition engine against the SQL record store."""

import pytest

from bidboard.errors.exceptions import PersistenceError
from bidboard.events.board_events import CONTENT_PROMOTION_PROMPT, MOVE_COMPLETED
from bidboard.models.enums import MoveOutcome
from bidboard.models.proposal import Proposal
from bidboard.repositories.record_store import KANBAN_CONFIG, PROPOSAL, SqlRecordStore
from bidboard.services.kanban.board_state import BoardState
from bidboard.services.kanban.transition import MoveTransitionEngine, field_updates_for
from bidboard.services.kanban.workflow import board_proposals, get_board

REVIEW_ITEMS = [
    {"id": "red_team", "label": "Red Team Review", "required": True},
    {"id": "compliance", "label": "Compliance Check", "required": True},
    {"id": "signoff", "label": "Sign-off", "required": True},
]

COLUMNS = [
    {"id": "solicit", "label": "Solicit", "type": "locked_phase", "phase_mapping": "phase3"},
    {"id": "writing", "label": "Writing", "type": "custom_stage"},
    {"id": "review", "label": "Review", "type": "custom_stage", "checklist_items": REVIEW_ITEMS},
    {"id": "crowded", "label": "Crowded", "type": "custom_stage", "wip_limit": 1},
    {"id": "submitted", "label": "Submitted", "type": "default_status",
     "default_status_mapping": "submitted", "is_terminal": True},
    {"id": "won", "label": "Won", "type": "default_status", "default_status_mapping": "won", "is_terminal": True},
]


def _proposal(proposal_id: str, **fields) -> dict:
    return {
        "proposal_id": proposal_id,
        "organization_id": "org_tx",
        "proposal_name": proposal_id,
        "status": "in_progress",
        **fields,
    }


async def _engine(store, proposals: list[dict]) -> MoveTransitionEngine:
    await store.create(
        KANBAN_CONFIG,
        {
            "board_id": "board_tx",
            "organization_id": "org_tx",
            "board_name": "Transitions",
            "board_type": "rfp",
            "is_master_board": False,
            "applies_to_proposal_types": [],
            "columns": [{**c, "order": i} for i, c in enumerate(COLUMNS)],
            "collapsed_column_ids": [],
        },
    )
    for fields in proposals:
        await store.create(PROPOSAL, fields)
    board = await get_board(store, "board_tx")
    return MoveTransitionEngine(store, board, BoardState(await board_proposals(store, board)))


async def _stored(store, proposal_id: str) -> Proposal:
    return Proposal.model_validate(await store.get(PROPOSAL, proposal_id))


class FlakyStore(SqlRecordStore):
    """SQL store whose proposal writes fail for selected ids."""

    def __init__(self, session, failing: set[str]):
        super().__init__(session)
        self.failing = failing

    async def update(self, entity_type, record_id, fields):
        if entity_type == PROPOSAL and record_id in self.failing:
            raise RuntimeError("store unavailable")
        return await super().update(entity_type, record_id, fields)


class TestFieldUpdates:
    def test_locked_phase(self):
        from bidboard.models.board import column_adapter

        column = column_adapter.validate_python({**COLUMNS[0], "order": 0})
        assert field_updates_for(column) == {
            "current_phase": "phase3",
            "status": "evaluating",
            "custom_workflow_stage_id": "solicit",
        }

    def test_master_uses_first_mapped_status(self):
        from bidboard.models.board import column_adapter

        column = column_adapter.validate_python(
            {"id": "active", "label": "Active", "type": "master_status", "order": 0,
             "status_mapping": ["draft", "in_progress"]}
        )
        assert field_updates_for(column)["status"] == "draft"


class TestMove:
    async def test_submitted_to_won(self, db_session):
        store = SqlRecordStore(db_session)
        engine = await _engine(store, [_proposal("prop_sub", status="submitted")])

        result = await engine.move("prop_sub", "submitted", "won", 0)

        assert result.outcome == MoveOutcome.COMPLETED
        assert result.proposal.status == "won"
        assert result.proposal.custom_workflow_stage_id is None
        assert result.events == [MOVE_COMPLETED, CONTENT_PROMOTION_PROMPT]
        stored = await _stored(store, "prop_sub")
        assert stored.status == "won"
        assert stored.version == 2

    async def test_into_locked_phase(self, db_session):
        store = SqlRecordStore(db_session)
        engine = await _engine(store, [_proposal("prop_p", custom_workflow_stage_id="writing")])

        result = await engine.move("prop_p", "writing", "solicit", 0)

        assert result.proposal.current_phase == "phase3"
        assert result.proposal.status == "evaluating"
        assert result.proposal.custom_workflow_stage_id == "solicit"
        assert result.events == [MOVE_COMPLETED]

    async def test_insert_keeps_orders_contiguous(self, db_session):
        store = SqlRecordStore(db_session)
        engine = await _engine(
            store,
            [
                _proposal("prop_a", custom_workflow_stage_id="writing", manual_order=0),
                _proposal("prop_b", custom_workflow_stage_id="writing", manual_order=1),
                _proposal("prop_c", custom_workflow_stage_id="writing", manual_order=2),
                _proposal("prop_new", custom_workflow_stage_id="solicit"),
            ],
        )

        result = await engine.move("prop_new", "solicit", "writing", 1)

        assert result.proposal.manual_order == 1
        assert [(u.proposal_id, u.manual_order) for u in result.sibling_updates] == [
            ("prop_b", 2),
            ("prop_c", 3),
        ]
        orders = {pid: (await _stored(store, pid)).manual_order for pid in ("prop_a", "prop_b", "prop_c", "prop_new")}
        assert orders == {"prop_a": 0, "prop_new": 1, "prop_b": 2, "prop_c": 3}

    async def test_destination_index_is_clamped(self, db_session):
        store = SqlRecordStore(db_session)
        engine = await _engine(
            store,
            [
                _proposal("prop_a", custom_workflow_stage_id="writing", manual_order=0),
                _proposal("prop_new", custom_workflow_stage_id="solicit"),
            ],
        )
        result = await engine.move("prop_new", "solicit", "writing", 50)
        assert result.proposal.manual_order == 1
        assert result.sibling_updates == []

    async def test_reorder_within_column(self, db_session):
        store = SqlRecordStore(db_session)
        engine = await _engine(
            store,
            [
                _proposal("prop_a", custom_workflow_stage_id="writing", manual_order=0),
                _proposal("prop_b", custom_workflow_stage_id="writing", manual_order=1),
                _proposal("prop_c", custom_workflow_stage_id="writing", manual_order=2),
            ],
        )
        result = await engine.move("prop_c", "writing", "writing", 0)
        assert result.proposal.manual_order == 0
        assert {u.proposal_id: u.manual_order for u in result.sibling_updates} == {"prop_a": 1, "prop_b": 2}
        assert result.advisories == []

    async def test_reentry_keeps_checklist_progress(self, db_session):
        store = SqlRecordStore(db_session)
        progress = {
            "review": {
                "red_team": {"completed": True, "completed_by": "usr_1"},
                "compliance": {"completed": True, "completed_by": "usr_1"},
            }
        }
        engine = await _engine(
            store,
            [_proposal("prop_back", custom_workflow_stage_id="writing", current_stage_checklist_status=progress)],
        )

        result = await engine.move("prop_back", "writing", "review", 0)

        review = result.proposal.current_stage_checklist_status["review"]
        assert review["red_team"].completed and review["compliance"].completed
        assert "signoff" not in review
        assert result.proposal.action_required is True
        assert "Sign-off" in result.proposal.action_required_description
        stored = await _stored(store, "prop_back")
        assert stored.current_stage_checklist_status["review"]["red_team"].completed

    async def test_soft_limit_advisory(self, db_session):
        store = SqlRecordStore(db_session)
        engine = await _engine(
            store,
            [
                _proposal("prop_in", custom_workflow_stage_id="crowded"),
                _proposal("prop_more", custom_workflow_stage_id="writing"),
            ],
        )
        result = await engine.move("prop_more", "writing", "crowded", 1)
        assert result.outcome == MoveOutcome.COMPLETED
        assert len(result.advisories) == 1
        assert "(2/1)" in result.advisories[0]


class TestWriteFailures:
    async def test_primary_failure_rolls_back(self, db_session):
        store = FlakyStore(db_session, failing={"prop_x"})
        engine = await _engine(store, [_proposal("prop_x", custom_workflow_stage_id="writing")])
        before = engine.state.require("prop_x")

        with pytest.raises(PersistenceError):
            await engine.move("prop_x", "writing", "review", 0)

        assert engine.state.require("prop_x") == before
        assert not engine.state.has_pending("prop_x")
        stored = await _stored(store, "prop_x")
        assert stored.custom_workflow_stage_id == "writing"
        assert stored.version == 1

    async def test_primary_failure_leaves_siblings_untouched(self, db_session):
        store = FlakyStore(db_session, failing={"prop_new"})
        engine = await _engine(
            store,
            [
                _proposal("prop_a", custom_workflow_stage_id="writing", manual_order=0),
                _proposal("prop_b", custom_workflow_stage_id="writing", manual_order=1),
                _proposal("prop_c", custom_workflow_stage_id="writing", manual_order=2),
                _proposal("prop_new", custom_workflow_stage_id="solicit"),
            ],
        )

        with pytest.raises(PersistenceError):
            await engine.move("prop_new", "solicit", "writing", 0)

        for proposal_id, order in (("prop_a", 0), ("prop_b", 1), ("prop_c", 2)):
            stored = await _stored(store, proposal_id)
            assert (stored.manual_order, stored.version) == (order, 1)
            assert engine.state.require(proposal_id).manual_order == order
        assert (await _stored(store, "prop_new")).custom_workflow_stage_id == "solicit"

    async def test_sibling_failure_is_partial(self, db_session):
        store = FlakyStore(db_session, failing={"prop_b"})
        engine = await _engine(
            store,
            [
                _proposal("prop_a", custom_workflow_stage_id="writing", manual_order=0),
                _proposal("prop_b", custom_workflow_stage_id="writing", manual_order=1),
                _proposal("prop_c", custom_workflow_stage_id="writing", manual_order=2),
                _proposal("prop_new", custom_workflow_stage_id="solicit"),
            ],
        )

        result = await engine.move("prop_new", "solicit", "writing", 0)

        assert result.outcome == MoveOutcome.PARTIAL
        assert len(result.warnings) == 1
        assert "prop_b" in result.warnings[0]
        assert [u.proposal_id for u in result.sibling_updates] == ["prop_a", "prop_c"]
        # The moved proposal itself is saved
        assert (await _stored(store, "prop_new")).custom_workflow_stage_id == "writing"
