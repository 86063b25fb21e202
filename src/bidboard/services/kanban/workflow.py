"""Board workflow service: the entry points behind the HTTP routes.

Moves hold the per-proposal move guard from the first read to the last write,
and are checked in this order:

1. the proposal must sit in the stated source column
2. no-op moves and moves of a proposal with a pending approval are refused
3. the access and limit gate (roles, hard WIP limit)
4. the approval gate, which may suspend the move
5. the transition engine

Checks 1-4 never write anything.
"""

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.config import settings
from bidboard.db.models.move_approval import MoveApprovalCommentRow
from bidboard.errors.exceptions import ConflictError, NotFoundError, ValidationError
from bidboard.events.board_events import (
    COLUMN_WIP_EXCEEDED,
    MOVE_APPROVAL_DECIDED,
    MOVE_APPROVAL_REQUESTED,
    emit_board_event,
)
from bidboard.models.board import BoardConfig, Column
from bidboard.models.enums import ApprovalDecisionValue, MoveApprovalStatus, MoveOutcome
from bidboard.models.move import (
    MoveApproval,
    MoveApprovalCommentCreate,
    MoveApprovalDecision,
    MoveRequest,
    MoveResult,
)
from bidboard.models.proposal import ChecklistToggle, Proposal, ProposalCreate
from bidboard.repositories.move_approval_repo import (
    MoveApprovalCommentRepository,
    MoveApprovalRepository,
)
from bidboard.repositories.record_store import KANBAN_CONFIG, PROPOSAL, SqlRecordStore
from bidboard.services.id_generator import generate_id
from bidboard.services.kanban.access_gate import can_move, decision_error
from bidboard.services.kanban.approval_gate import (
    apply_expiry,
    cancel_approval,
    check_decider,
    get_open_approval,
    is_expired,
    open_approval,
    record_decision,
    requires_approval,
    serialize_approval,
)
from bidboard.services.kanban.board_state import BoardState
from bidboard.services.kanban.checklist import (
    action_required_fields,
    carry_checklist_state,
    set_item_completion,
)
from bidboard.services.kanban.move_guard import MoveGuard
from bidboard.services.kanban.paginator import LazyRevealPaginator
from bidboard.services.kanban.resolver import BoardAssignment, assign_board
from bidboard.services.kanban.transition import (
    MoveTransitionEngine,
    field_updates_for,
    record_fields,
)
from bidboard.services.kanban.validation import load_board, parse_board

logger = structlog.get_logger(__name__)


async def get_board(store: SqlRecordStore, board_id: str, strict: bool = True) -> BoardConfig:
    """Load a board. ``strict=False`` skips the blocking checks so that an
    administrator can still repair a misconfigured board.
    """
    record = await store.get(KANBAN_CONFIG, board_id)
    if record is None:
        raise NotFoundError("Board", board_id)
    if not strict:
        return parse_board(record)
    return load_board(record)


async def board_proposals(store: SqlRecordStore, board: BoardConfig) -> list[Proposal]:
    """Proposals of the board's organization that belong on the board.

    Always read from the store, never from a cached snapshot.
    """
    records = await store.list(PROPOSAL, {"organization_id": board.organization_id}, sort="created_at")
    proposals = [Proposal.model_validate(r) for r in records]
    return [p for p in proposals if board.covers(p.proposal_type)]


async def load_context(store: SqlRecordStore, board_id: str) -> tuple[BoardConfig, list[Proposal]]:
    board = await get_board(store, board_id)
    return board, await board_proposals(store, board)


def _column(board: BoardConfig, column_id: str) -> Column:
    column = board.column(column_id)
    if column is None:
        raise NotFoundError("Column", column_id)
    return column


def _in_column(assignment: BoardAssignment, proposal_id: str, column_id: str) -> bool:
    if assignment.column_of(proposal_id) == column_id:
        return True
    return any(p.proposal_id == proposal_id for p in assignment.visible_members(column_id))


def _position(assignment: BoardAssignment, proposal_id: str, column_id: str) -> int | None:
    for index, proposal in enumerate(assignment.visible_members(column_id)):
        if proposal.proposal_id == proposal_id:
            return index
    return None


# --- Board views ---


def _column_summary(
    column: Column,
    members: list[Proposal],
    paginator: LazyRevealPaginator,
    collapsed: bool,
) -> dict:
    return {
        "id": column.id,
        "label": column.label,
        "type": column.type,
        "order": column.order,
        "color": column.color,
        "is_locked": column.is_locked,
        "is_terminal": column.is_terminal,
        "is_collapsed": collapsed,
        "wip_limit": column.wip_limit,
        "wip_limit_type": column.wip_limit_type,
        "total": len(members),
        "over_limit": column.wip_limit > 0 and len(members) > column.wip_limit,
        "proposals": [p.model_dump(mode="json") for p in paginator.get_visible(column.id)],
        "loaded": paginator.cursor(column.id),
        "has_more": paginator.has_more(column.id),
    }


def build_board_view(
    board: BoardConfig,
    proposals: list[Proposal],
    loaded: dict[str, int] | None = None,
) -> dict:
    assignment = assign_board(board, proposals)
    paginator = LazyRevealPaginator(assignment.visible_members)
    for column_id, count in (loaded or {}).items():
        paginator.set_cursor(column_id, count)

    collapsed = set(board.collapsed_column_ids)
    columns = [
        _column_summary(c, assignment.visible_members(c.id), paginator, c.id in collapsed)
        for c in board.ordered_columns()
    ]
    return {
        "board_id": board.board_id,
        "board_name": board.board_name,
        "board_type": board.board_type,
        "is_master_board": board.is_master_board,
        "columns": columns,
        "unassigned": [p.model_dump(mode="json") for p in assignment.unassigned],
        "diagnostics": assignment.diagnostics,
    }


def column_page(
    board: BoardConfig,
    proposals: list[Proposal],
    column_id: str,
    loaded: int | None = None,
    more: bool = False,
    load_all: bool = False,
) -> dict:
    """One column's revealed slice; ``loaded`` restores the client's cursor."""
    column = _column(board, column_id)
    assignment = assign_board(board, proposals)
    paginator = LazyRevealPaginator(assignment.visible_members)
    if loaded is not None:
        paginator.set_cursor(column_id, loaded)
    if load_all:
        paginator.load_all(column_id)
    elif more:
        paginator.load_more(column_id)
    return _column_summary(
        column,
        assignment.visible_members(column_id),
        paginator,
        column_id in board.collapsed_column_ids,
    )


# --- Proposals ---


async def create_proposal(session: AsyncSession, board_id: str, data: ProposalCreate) -> Proposal:
    """Create a proposal in the board's first non-terminal column, at the end."""
    store = SqlRecordStore(session)
    board, proposals = await load_context(store, board_id)
    column = board.initial_column()
    if column is None:
        raise ValidationError(f"Board '{board_id}' has no column for new proposals")

    proposal_type = data.proposal_type
    if proposal_type is None and board.applies_to_proposal_types:
        proposal_type = board.applies_to_proposal_types[0]
    if not board.covers(proposal_type):
        raise ValidationError(
            f"Board '{board_id}' does not track proposals of type '{proposal_type}'",
            details={"applies_to_proposal_types": board.applies_to_proposal_types},
        )

    assignment = assign_board(board, proposals)
    draft = Proposal(
        proposal_id=generate_id("prop_"),
        organization_id=board.organization_id,
        proposal_name=data.proposal_name,
        proposal_type=proposal_type,
    )
    fields = field_updates_for(column)
    fields["current_stage_checklist_status"] = carry_checklist_state({}, column.id)
    fields.update(action_required_fields(draft.model_copy(update=fields), column))
    fields["manual_order"] = len(assignment.visible_members(column.id))

    record = await store.create(
        PROPOSAL,
        record_fields(
            {
                "proposal_id": draft.proposal_id,
                "organization_id": draft.organization_id,
                "proposal_name": draft.proposal_name,
                "proposal_type": draft.proposal_type,
                **fields,
            }
        ),
    )
    proposal = Proposal.model_validate(record)
    logger.info(
        "proposal_created",
        board_id=board_id,
        proposal_id=proposal.proposal_id,
        column_id=column.id,
        actor_id=data.actor_id,
    )
    return proposal


async def get_proposal(session: AsyncSession, proposal_id: str) -> Proposal:
    record = await SqlRecordStore(session).get(PROPOSAL, proposal_id)
    if record is None:
        raise NotFoundError("Proposal", proposal_id)
    return Proposal.model_validate(record)


async def toggle_checklist_item(
    session: AsyncSession,
    board_id: str,
    proposal_id: str,
    column_id: str,
    item_id: str,
    toggle: ChecklistToggle,
) -> Proposal:
    """Mark a checklist item complete or incomplete.

    ``action_required`` is only recomputed when the item belongs to the column
    the proposal currently sits in.
    """
    store = SqlRecordStore(session)
    board, proposals = await load_context(store, board_id)
    column = _column(board, column_id)
    proposal = BoardState(proposals).require(proposal_id)

    fields = set_item_completion(proposal, column, item_id, toggle.completed, toggle.actor_id)
    if assign_board(board, proposals).column_of(proposal_id) != column_id:
        fields = {"current_stage_checklist_status": fields["current_stage_checklist_status"]}

    record = await store.update(PROPOSAL, proposal_id, record_fields(fields))
    logger.info(
        "checklist_item_toggled",
        proposal_id=proposal_id,
        column_id=column_id,
        item_id=item_id,
        completed=toggle.completed,
    )
    return Proposal.model_validate(record)


# --- Moves ---


async def request_move(
    session: AsyncSession,
    guard: MoveGuard,
    board_id: str,
    request: MoveRequest,
    trace_id: str | None = None,
) -> MoveResult:
    """Validate a move and either execute it or suspend it for approval.

    The proposal is claimed before anything is read, so a second move of the
    same proposal is refused until this one has been validated and written.
    """
    async with guard.claim(request.proposal_id):
        board, source, dest, result = await _checked_move(session, board_id, request, trace_id)

    if result.outcome == MoveOutcome.APPROVAL_PENDING:
        await emit_board_event(
            MOVE_APPROVAL_REQUESTED,
            {
                "board_id": board_id,
                "proposal_id": request.proposal_id,
                "approval_id": result.approval_id,
                "source_column_id": source.id,
                "dest_column_id": dest.id,
                "requested_by": request.actor_id,
            },
            session,
        )
        await session.commit()
    else:
        await _emit_move_events(session, board, source, dest, result, request.actor_id)
    return result


async def _checked_move(
    session: AsyncSession,
    board_id: str,
    request: MoveRequest,
    trace_id: str | None,
) -> tuple[BoardConfig, Column, Column, MoveResult]:
    store = SqlRecordStore(session)
    board, proposals = await load_context(store, board_id)
    source = _column(board, request.source_column_id)
    dest = _column(board, request.dest_column_id)
    state = BoardState(proposals)
    proposal = state.require(request.proposal_id)
    log = logger.bind(
        board_id=board_id,
        proposal_id=proposal.proposal_id,
        source_column_id=source.id,
        dest_column_id=dest.id,
        actor_role=request.actor_role,
    )

    assignment = assign_board(board, proposals)
    if not _in_column(assignment, proposal.proposal_id, source.id):
        raise ConflictError(
            f"Proposal '{proposal.proposal_id}' is no longer in column '{source.label}'",
            details={"current_column_id": assignment.column_of(proposal.proposal_id)},
        )

    if source.id == dest.id:
        current = request.source_index
        if current is None:
            current = _position(assignment, proposal.proposal_id, source.id)
        if current == request.destination_index:
            raise ValidationError("Move does not change the proposal's position")

    pending = await MoveApprovalRepository(session).get_pending_for_proposal(proposal.proposal_id)
    if pending is not None and (await apply_expiry(session, pending)).status == MoveApprovalStatus.PENDING:
        raise ConflictError(
            f"Proposal '{proposal.proposal_id}' has a move awaiting approval",
            details={"proposal_id": proposal.proposal_id},
        )

    decision = can_move(
        proposal, source, dest, request.actor_role, len(assignment.visible_members(dest.id))
    )
    if not decision.allowed:
        log.info("move_denied", failed_rule=decision.failed_rule, details=decision.details)
        raise decision_error(decision)

    if requires_approval(source, dest):
        row = await open_approval(
            session, board_id, request, source, settings.approval_expiry_hours, trace_id
        )
        await session.commit()
        log.info("move_suspended_for_approval", approval_id=row.approval_id)
        result = MoveResult(
            outcome=MoveOutcome.APPROVAL_PENDING,
            proposal=proposal,
            approval_id=row.approval_id,
        )
        return board, source, dest, result

    result = await MoveTransitionEngine(store, board, state).move(
        proposal.proposal_id, source.id, dest.id, request.destination_index
    )
    return board, source, dest, result


async def _emit_move_events(
    session: AsyncSession,
    board: BoardConfig,
    source: Column,
    dest: Column,
    result: MoveResult,
    actor_id: str,
) -> None:
    payload = {
        "board_id": board.board_id,
        "proposal_id": result.proposal.proposal_id,
        "source_column_id": source.id,
        "dest_column_id": dest.id,
        "status": result.proposal.status,
        "outcome": result.outcome,
        "actor_id": actor_id,
    }
    for event_type in result.events:
        await emit_board_event(event_type, payload, session)
    for advisory in result.advisories:
        await emit_board_event(
            COLUMN_WIP_EXCEEDED,
            {"board_id": board.board_id, "column_id": dest.id, "advisory": advisory},
            session,
        )
    await session.commit()


# --- Move approvals ---


async def get_move_approval(session: AsyncSession, approval_id: str) -> MoveApproval:
    row = await MoveApprovalRepository(session).get(approval_id)
    if row is None:
        raise NotFoundError("Move approval", approval_id)
    return serialize_approval(await apply_expiry(session, row))


async def list_pending_approvals(session: AsyncSession, board_id: str | None = None) -> list[MoveApproval]:
    rows = await MoveApprovalRepository(session).list_pending(board_id)
    now = datetime.now(timezone.utc)
    return [serialize_approval(row) for row in rows if not is_expired(row, now)]


async def _approval_proposal_id(session: AsyncSession, approval_id: str) -> str:
    row = await MoveApprovalRepository(session).get(approval_id)
    if row is None:
        raise NotFoundError("Move approval", approval_id)
    return row.proposal_id


async def decide_move_approval(
    session: AsyncSession,
    guard: MoveGuard,
    approval_id: str,
    decision: MoveApprovalDecision,
) -> tuple[MoveApproval, MoveResult | None]:
    """Approve (and execute) or reject a suspended move.

    A refused decider leaves the approval pending. Approving re-checks that the
    proposal still sits in the recorded source column and that the move still
    passes the access and limit gate. The proposal is claimed before the
    approval status is checked, so two decisions cannot race.
    """
    async with guard.claim(await _approval_proposal_id(session, approval_id)):
        row = await get_open_approval(session, approval_id)
        check_decider(row, decision)
        log = logger.bind(approval_id=approval_id, proposal_id=row.proposal_id, board_id=row.board_id)

        moved = None
        if decision.decision == ApprovalDecisionValue.APPROVE:
            store = SqlRecordStore(session)
            board, proposals = await load_context(store, row.board_id)
            source = _column(board, row.source_column_id)
            dest = _column(board, row.dest_column_id)
            state = BoardState(proposals)
            proposal = state.require(row.proposal_id)
            assignment = assign_board(board, proposals)
            if not _in_column(assignment, proposal.proposal_id, source.id):
                raise ConflictError(
                    f"Proposal '{proposal.proposal_id}' has left column '{source.label}' since the move was requested",
                    details={"current_column_id": assignment.column_of(proposal.proposal_id)},
                )
            gate = can_move(
                proposal, source, dest, row.requested_role, len(assignment.visible_members(dest.id))
            )
            if not gate.allowed:
                log.info("approved_move_denied", failed_rule=gate.failed_rule)
                raise decision_error(gate)

            result = await MoveTransitionEngine(store, board, state).move(
                proposal.proposal_id, source.id, dest.id, row.destination_index
            )
            moved = (board, source, dest, result)

        row = await record_decision(session, row, decision)
        await session.commit()

    result = None
    if moved is not None:
        board, source, dest, result = moved
        await _emit_move_events(session, board, source, dest, result, decision.decided_by)

    log.info("move_approval_decided", decision=decision.decision, decided_by=decision.decided_by)
    await emit_board_event(
        MOVE_APPROVAL_DECIDED,
        {
            "board_id": row.board_id,
            "proposal_id": row.proposal_id,
            "approval_id": row.approval_id,
            "decision": decision.decision,
            "decided_by": decision.decided_by,
            "reason": decision.reason,
        },
        session,
    )
    await session.commit()
    return serialize_approval(row), result


async def cancel_move_approval(
    session: AsyncSession,
    guard: MoveGuard,
    approval_id: str,
    cancelled_by: str,
) -> MoveApproval:
    """Withdraw a pending move; the proposal is untouched."""
    async with guard.claim(await _approval_proposal_id(session, approval_id)):
        row = await cancel_approval(session, approval_id, cancelled_by)
        await session.commit()
    logger.info("move_approval_cancelled", approval_id=approval_id, cancelled_by=cancelled_by)
    return serialize_approval(row)


async def add_approval_comment(
    session: AsyncSession,
    approval_id: str,
    comment: MoveApprovalCommentCreate,
) -> dict:
    """Anyone may comment, including actors who cannot decide."""
    if await MoveApprovalRepository(session).get(approval_id) is None:
        raise NotFoundError("Move approval", approval_id)
    row = await MoveApprovalCommentRepository(session).create(
        comment_id=generate_id("mvcmt_"),
        approval_id=approval_id,
        author=comment.author,
        author_role=comment.author_role,
        content=comment.content,
        comment_type=comment.comment_type,
    )
    await session.commit()
    return serialize_comment(row)


async def list_approval_comments(session: AsyncSession, approval_id: str) -> list[dict]:
    if await MoveApprovalRepository(session).get(approval_id) is None:
        raise NotFoundError("Move approval", approval_id)
    rows = await MoveApprovalCommentRepository(session).list_by_approval(approval_id)
    return [serialize_comment(r) for r in rows]


def serialize_comment(row: MoveApprovalCommentRow) -> dict:
    return {
        "comment_id": row.comment_id,
        "approval_id": row.approval_id,
        "author": row.author,
        "author_role": row.author_role,
        "content": row.content,
        "comment_type": row.comment_type,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }
