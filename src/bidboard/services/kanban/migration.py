"""Migration of legacy status-only boards to the phase workflow layout."""

from dataclasses import dataclass, field

import structlog

from bidboard.errors.exceptions import ConflictError
from bidboard.models.board import BoardConfig
from bidboard.models.enums import Phase, ProposalStatus
from bidboard.models.proposal import Proposal
from bidboard.repositories.record_store import KANBAN_CONFIG, PROPOSAL, RecordStore
from bidboard.services.kanban.checklist import action_required_fields, carry_checklist_state
from bidboard.services.kanban.templates import template_columns
from bidboard.services.kanban.transition import field_updates_for, record_fields
from bidboard.services.kanban.validation import is_legacy_board

logger = structlog.get_logger(__name__)

MIGRATION_TARGET = "phase_workflow"
FALLBACK_COLUMN = "initiate"

STATUS_TO_COLUMN = {
    ProposalStatus.EVALUATING: "evaluate",
    ProposalStatus.DRAFT: "draft",
    ProposalStatus.IN_PROGRESS: "review",
    ProposalStatus.SUBMITTED: "submitted",
    ProposalStatus.WON: "won",
    ProposalStatus.LOST: "lost",
    ProposalStatus.ARCHIVED: "archived",
}

PHASE_TO_COLUMN = {
    Phase.PHASE1: "initiate",
    Phase.PHASE2: "resources",
    Phase.PHASE3: "solicit",
    Phase.PHASE4: "evaluate",
    Phase.PHASE5: "strategy",
    Phase.PHASE6: "draft",
    Phase.PHASE7: "price",
}


@dataclass
class MigrationResult:
    board_id: str
    columns_replaced: bool = False
    proposals_migrated: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "board_id": self.board_id,
            "columns_replaced": self.columns_replaced,
            "proposals_migrated": self.proposals_migrated,
            "errors": list(self.errors),
        }


def target_column_id(proposal: Proposal) -> str:
    """Column of the phase workflow a legacy proposal lands in."""
    if proposal.status in STATUS_TO_COLUMN:
        return STATUS_TO_COLUMN[proposal.status]
    if proposal.current_phase in PHASE_TO_COLUMN:
        return PHASE_TO_COLUMN[proposal.current_phase]
    return FALLBACK_COLUMN


async def migrate_legacy_board(
    store: RecordStore,
    board: BoardConfig,
    proposals: list[Proposal],
) -> MigrationResult:
    """Replace a legacy board's columns and re-target its proposals.

    Each proposal gets the field values a move into its target column would
    produce. A failing proposal is recorded and the batch continues.
    """
    if not is_legacy_board(board):
        raise ConflictError(
            f"Board '{board.board_id}' is not a legacy board",
            details={"board_id": board.board_id},
        )

    result = MigrationResult(board_id=board.board_id)
    migrated = BoardConfig.model_validate(
        {**board.model_dump(exclude={"columns"}), "columns": template_columns(MIGRATION_TARGET)}
    )

    await store.update(
        KANBAN_CONFIG,
        board.board_id,
        {
            "columns": [c.model_dump(mode="json") for c in migrated.ordered_columns()],
            "collapsed_column_ids": [],
        },
    )
    result.columns_replaced = True

    positions: dict[str, int] = {}
    for proposal in sorted(proposals, key=lambda p: (p.manual_order, p.proposal_id)):
        column = migrated.column(target_column_id(proposal))
        fields = field_updates_for(column)
        fields["current_stage_checklist_status"] = carry_checklist_state(
            proposal.current_stage_checklist_status, column.id
        )
        fields.update(action_required_fields(proposal.model_copy(update=fields), column))
        fields["manual_order"] = positions.get(column.id, 0)
        try:
            await store.update(PROPOSAL, proposal.proposal_id, record_fields(fields))
        except Exception as exc:
            logger.warning(
                "proposal_migration_failed",
                board_id=board.board_id,
                proposal_id=proposal.proposal_id,
                error=str(exc),
            )
            result.errors.append(f"Error migrating proposal {proposal.proposal_id}: {exc}")
            continue
        positions[column.id] = fields["manual_order"] + 1
        result.proposals_migrated += 1

    logger.info(
        "legacy_board_migrated",
        board_id=board.board_id,
        proposals_migrated=result.proposals_migrated,
        errors=len(result.errors),
    )
    return result
