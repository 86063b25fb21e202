"""Move transition engine: applies a validated column move.

Order of effects:

1. derive the destination field values from the column variant
2. carry checklist state and recompute ``action_required``
3. recompute contiguous ``manual_order`` over the destination membership
4. write the moved proposal (all-or-nothing), then each displaced sibling
5. report advisories and side-effect events

Siblings are only written after the primary write succeeded. A failed sibling
write leaves membership correct and is reported as a partial success.
"""

from enum import Enum

import structlog
from pydantic import TypeAdapter

from bidboard.errors.exceptions import BidBoardError, NotFoundError, PersistenceError
from bidboard.events.board_events import CONTENT_PROMOTION_PROMPT, MOVE_COMPLETED
from bidboard.models.board import (
    BoardConfig,
    Column,
    CustomStageColumn,
    DefaultStatusColumn,
    LockedPhaseColumn,
    MasterStatusColumn,
)
from bidboard.models.enums import MoveOutcome, ProposalStatus
from bidboard.models.move import MoveResult, SiblingOrderUpdate
from bidboard.models.proposal import ChecklistStatus, Proposal, status_for_phase
from bidboard.repositories.record_store import PROPOSAL, RecordStore
from bidboard.services.kanban.access_gate import wip_advisory
from bidboard.services.kanban.board_state import BoardState
from bidboard.services.kanban.checklist import action_required_fields, carry_checklist_state
from bidboard.services.kanban.resolver import assign_board

logger = structlog.get_logger(__name__)

_checklist_adapter: TypeAdapter[ChecklistStatus] = TypeAdapter(ChecklistStatus)


def field_updates_for(column: Column) -> dict:
    """Proposal field values implied by sitting in ``column``."""
    if isinstance(column, LockedPhaseColumn):
        return {
            "current_phase": column.phase_mapping,
            "status": status_for_phase(column.phase_mapping),
            "custom_workflow_stage_id": column.id,
        }
    if isinstance(column, CustomStageColumn):
        return {
            "custom_workflow_stage_id": column.id,
            "current_phase": None,
            "status": ProposalStatus.IN_PROGRESS,
        }
    if isinstance(column, DefaultStatusColumn):
        return {
            "status": column.default_status_mapping,
            "current_phase": None,
            "custom_workflow_stage_id": None,
        }
    if isinstance(column, MasterStatusColumn):
        return {
            "status": column.status_mapping[0],
            "current_phase": None,
            "custom_workflow_stage_id": None,
        }
    raise TypeError(f"Unsupported column type: {type(column).__name__}")


def record_fields(fields: dict) -> dict:
    """JSON-safe copy of proposal field updates for the record store."""
    out = {k: v.value if isinstance(v, Enum) else v for k, v in fields.items()}
    if "current_stage_checklist_status" in out:
        out["current_stage_checklist_status"] = _checklist_adapter.dump_python(
            out["current_stage_checklist_status"], mode="json"
        )
    return out


def _require_column(board: BoardConfig, column_id: str) -> Column:
    column = board.column(column_id)
    if column is None:
        raise NotFoundError("Column", column_id)
    return column


def is_submission_win(source: Column, updated: Proposal) -> bool:
    return ProposalStatus.SUBMITTED in source.mapped_statuses and updated.status == ProposalStatus.WON


class MoveTransitionEngine:
    def __init__(self, store: RecordStore, board: BoardConfig, state: BoardState):
        self.store = store
        self.board = board
        self.state = state

    def plan(
        self,
        proposal_id: str,
        dest_column_id: str,
        destination_index: int,
    ) -> tuple[dict, list[SiblingOrderUpdate], int]:
        """Compute the primary field updates and sibling reorders without writing.

        Returns (fields, sibling_updates, destination_count_after).
        """
        dest = _require_column(self.board, dest_column_id)
        proposal = self.state.require(proposal_id)

        fields = field_updates_for(dest)
        fields["current_stage_checklist_status"] = carry_checklist_state(
            proposal.current_stage_checklist_status, dest.id
        )
        candidate = proposal.model_copy(update=fields)
        fields.update(action_required_fields(candidate, dest))

        # Membership is read from the latest state, never a cached snapshot
        assignment = assign_board(self.board, self.state.proposals())
        siblings = [p for p in assignment.visible_members(dest.id) if p.proposal_id != proposal_id]
        index = min(destination_index, len(siblings))
        ordered = siblings[:index] + [candidate] + siblings[index:]

        fields["manual_order"] = index
        sibling_updates = [
            SiblingOrderUpdate(proposal_id=p.proposal_id, manual_order=position)
            for position, p in enumerate(ordered)
            if p.proposal_id != proposal_id and p.manual_order != position
        ]
        return fields, sibling_updates, len(ordered)

    async def move(
        self,
        proposal_id: str,
        source_column_id: str,
        dest_column_id: str,
        destination_index: int,
    ) -> MoveResult:
        source = _require_column(self.board, source_column_id)
        dest = _require_column(self.board, dest_column_id)
        log = logger.bind(
            board_id=self.board.board_id,
            proposal_id=proposal_id,
            source_column_id=source.id,
            dest_column_id=dest.id,
        )

        fields, sibling_updates, dest_count = self.plan(proposal_id, dest.id, destination_index)

        token = self.state.apply_optimistic(proposal_id, fields)
        try:
            record = await self.store.update(PROPOSAL, proposal_id, record_fields(fields))
        except Exception as exc:
            self.state.rollback(token)
            log.error("move_primary_write_failed", error=str(exc))
            if isinstance(exc, BidBoardError):
                raise
            raise PersistenceError(
                f"Could not save move of proposal '{proposal_id}'; nothing was changed",
                details={"proposal_id": proposal_id, "dest_column_id": dest.id},
            ) from exc
        updated = Proposal.model_validate(record)
        self.state.confirm(token, updated)

        warnings: list[str] = []
        applied: list[SiblingOrderUpdate] = []
        for update in sibling_updates:
            try:
                sibling = await self.store.update(
                    PROPOSAL, update.proposal_id, {"manual_order": update.manual_order}
                )
            except Exception as exc:
                log.warning(
                    "sibling_order_write_failed",
                    sibling_id=update.proposal_id,
                    manual_order=update.manual_order,
                    error=str(exc),
                )
                warnings.append(
                    f"Order of proposal '{update.proposal_id}' in '{dest.label}' could not be saved"
                )
                continue
            self.state.reconcile([Proposal.model_validate(sibling)])
            applied.append(update)

        advisories = []
        if source.id != dest.id:
            advisory = wip_advisory(dest, dest_count)
            if advisory:
                advisories.append(advisory)

        events = [MOVE_COMPLETED]
        if is_submission_win(source, updated):
            events.append(CONTENT_PROMOTION_PROMPT)

        outcome = MoveOutcome.PARTIAL if warnings else MoveOutcome.COMPLETED
        log.info(
            "move_completed",
            outcome=outcome.value,
            manual_order=updated.manual_order,
            siblings_reordered=len(applied),
        )
        return MoveResult(
            outcome=outcome,
            proposal=updated,
            sibling_updates=applied,
            warnings=warnings,
            advisories=advisories,
            events=events,
        )
