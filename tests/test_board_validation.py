"""Tests for board configuration checks and built-in templates."""

import pytest
from sqlalchemy import select

from bidboard.db.models.board import KanbanConfigRow
from bidboard.errors.exceptions import ConfigurationError, ValidationError
from bidboard.models.board import BoardConfig
from bidboard.services.kanban.templates import (
    BOARD_TEMPLATES,
    build_board,
    create_board_from_template,
    seed_default_boards,
    template_columns,
)
from bidboard.services.kanban.validation import (
    is_legacy_board,
    load_board,
    parse_board,
    validate_board,
)


def _record(columns: list[dict], master: bool = False) -> dict:
    return {
        "board_id": "board_val",
        "organization_id": "org_test",
        "board_name": "Validation",
        "board_type": "master" if master else "custom",
        "is_master_board": master,
        "columns": [{**c, "order": i} for i, c in enumerate(columns)],
    }


LEGACY = [
    {"id": "evaluating", "label": "Evaluating", "type": "default_status", "default_status_mapping": "evaluating"},
    {"id": "drafting", "label": "Drafting", "type": "default_status", "default_status_mapping": "draft"},
    {"id": "done", "label": "Done", "type": "default_status", "default_status_mapping": "won"},
]


class TestValidateBoard:
    def test_no_columns(self):
        report = validate_board(BoardConfig.model_validate(_record([])))
        assert not report.valid
        assert report.errors == ["Board has no columns"]

    def test_duplicate_column_ids(self):
        columns = [
            {"id": "a", "label": "A", "type": "custom_stage"},
            {"id": "a", "label": "A again", "type": "custom_stage"},
        ]
        report = validate_board(BoardConfig.model_validate(_record(columns)))
        assert any("Column id 'a'" in e for e in report.errors)

    def test_duplicate_orders(self):
        record = _record([
            {"id": "a", "label": "A", "type": "custom_stage"},
            {"id": "b", "label": "B", "type": "custom_stage"},
        ])
        record["columns"][1]["order"] = 0
        report = validate_board(BoardConfig.model_validate(record))
        assert any("Column order 0" in e for e in report.errors)

    def test_master_columns_on_type_specific_board(self):
        columns = [
            {"id": "a", "label": "A", "type": "custom_stage"},
            {"id": "m", "label": "M", "type": "master_status", "status_mapping": ["draft"]},
        ]
        report = validate_board(BoardConfig.model_validate(_record(columns)))
        assert any("Master status columns" in e for e in report.errors)

    def test_master_duplicate_claim_is_error(self):
        columns = [
            {"id": "a", "label": "A", "type": "master_status", "status_mapping": ["evaluating", "draft"]},
            {"id": "b", "label": "B", "type": "master_status", "status_mapping": ["draft"]},
        ]
        report = validate_board(BoardConfig.model_validate(_record(columns, master=True)))
        assert any("Status 'draft' is claimed by several master columns" in e for e in report.errors)

    def test_master_unclaimed_status_is_warning(self):
        columns = [
            {"id": "a", "label": "A", "type": "master_status", "status_mapping": ["evaluating"]},
        ]
        report = validate_board(BoardConfig.model_validate(_record(columns, master=True)))
        assert report.valid
        assert any("Status 'won' is not claimed" in w for w in report.warnings)

    def test_master_board_without_master_columns(self):
        columns = [{"id": "a", "label": "A", "type": "custom_stage"}]
        report = validate_board(BoardConfig.model_validate(_record(columns, master=True)))
        assert "Master board has no master status columns" in report.errors

    def test_no_initial_column(self):
        columns = [
            {"id": "won", "label": "Won", "type": "default_status", "default_status_mapping": "won",
             "is_terminal": True},
        ]
        report = validate_board(BoardConfig.model_validate(_record(columns)))
        assert "Board has no non-terminal column for new proposals" in report.errors

    def test_hard_zero_limit_warning(self):
        columns = [{"id": "a", "label": "A", "type": "custom_stage", "wip_limit_type": "hard"}]
        report = validate_board(BoardConfig.model_validate(_record(columns)))
        assert report.valid
        assert any("hard WIP limit of 0" in w for w in report.warnings)

    def test_approval_without_terminal_column_warning(self):
        columns = [{"id": "a", "label": "A", "type": "custom_stage", "requires_approval_to_exit": True}]
        report = validate_board(BoardConfig.model_validate(_record(columns)))
        assert any("requires approval to exit" in w for w in report.warnings)

    def test_legacy_board_detected(self):
        board = BoardConfig.model_validate(_record(LEGACY))
        assert is_legacy_board(board)
        report = validate_board(board)
        assert report.valid
        assert report.is_legacy
        assert report.to_dict()["is_legacy"] is True


class TestLoadBoard:
    def test_malformed_variant_is_configuration_error(self):
        record = _record([{"id": "a", "label": "A", "type": "locked_phase"}])
        with pytest.raises(ConfigurationError) as exc_info:
            parse_board(record)
        assert exc_info.value.status_code == 422
        assert exc_info.value.details["errors"]

    def test_unknown_column_type(self):
        record = _record([{"id": "a", "label": "A", "type": "swimlane"}])
        with pytest.raises(ConfigurationError):
            parse_board(record)

    def test_blocking_errors_raise(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_board(_record([]))
        assert exc_info.value.details["valid"] is False

    def test_valid_board_loads(self):
        board = load_board(_record(LEGACY))
        assert [c.id for c in board.ordered_columns()] == ["evaluating", "drafting", "done"]

    @pytest.mark.parametrize(
        "column,statuses",
        [
            ({"type": "locked_phase", "phase_mapping": "phase5"}, {"draft"}),
            ({"type": "custom_stage"}, {"in_progress"}),
            ({"type": "default_status", "default_status_mapping": "lost"}, {"lost"}),
            ({"type": "master_status", "status_mapping": ["draft", "in_progress"]}, {"draft", "in_progress"}),
        ],
    )
    def test_every_column_type_maps_statuses(self, column, statuses):
        from bidboard.models.board import column_adapter

        parsed = column_adapter.validate_python({"id": "col", "label": "Col", "order": 0, **column})
        assert parsed.mapped_statuses == statuses


class TestTemplates:
    @pytest.mark.parametrize("board_type", sorted(BOARD_TEMPLATES))
    def test_every_template_is_valid(self, board_type):
        board = build_board("org_test", board_type)
        report = validate_board(board)
        assert report.valid, report.errors
        assert not report.is_legacy

    def test_unknown_template(self):
        with pytest.raises(ValidationError):
            template_columns("swimlane")

    def test_terminal_and_phase_columns_are_locked(self):
        columns = {c["id"]: c for c in template_columns("phase_workflow")}
        assert columns["initiate"]["is_locked"]
        assert columns["won"]["is_locked"]
        stage_columns = {c["id"]: c for c in template_columns("rfp_15_column")}
        assert not stage_columns["writing"]["is_locked"]
        assert stage_columns["submitted"]["is_locked"]

    def test_fifteen_column_layout(self):
        board = build_board("org_test", "rfp_15_column")
        assert len(board.columns) == 15
        assert [c.order for c in board.ordered_columns()] == list(range(15))
        final = board.column("final")
        assert final.requires_approval_to_exit
        assert "proposal_manager" in final.approver_roles

    def test_phase_workflow_flags_shared_phases(self):
        report = validate_board(build_board("org_test", "phase_workflow"))
        assert any("Phase 'phase7'" in w for w in report.warnings)

    def test_master_template_claims_every_status(self):
        report = validate_board(build_board("org_test", "master"))
        assert report.valid
        assert report.warnings == []

    async def test_create_from_template_is_idempotent(self, db_session):
        record, created = await create_board_from_template(db_session, "org_test", "rfp")
        await db_session.commit()
        again, created_again = await create_board_from_template(db_session, "org_test", "rfp")
        assert created is True
        assert created_again is False
        assert again["board_id"] == record["board_id"]

    async def test_seed_default_boards(self, db_session):
        created = await seed_default_boards(db_session, "org_seed")
        await db_session.commit()
        assert len(created) == 2
        assert await seed_default_boards(db_session, "org_seed") == []

        rows = (await db_session.execute(select(KanbanConfigRow))).scalars().all()
        assert sorted(r.board_type for r in rows) == ["master", "rfp_15_column"]
