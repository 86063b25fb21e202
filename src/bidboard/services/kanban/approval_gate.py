"""Approval gate for moves out of columns that require sign-off.

A move out of a column flagged ``requires_approval_to_exit`` toward a terminal
column is suspended as a pending MoveApproval. Nothing on the proposal changes
until an approver decides; cancelling or rejecting discards the move.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.db.models.move_approval import MoveApprovalRow
from bidboard.errors.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from bidboard.models.board import Column
from bidboard.models.enums import ApprovalDecisionValue, MoveApprovalStatus
from bidboard.models.move import MoveApproval, MoveApprovalDecision, MoveRequest
from bidboard.repositories.move_approval_repo import MoveApprovalRepository
from bidboard.services.id_generator import generate_id


def requires_approval(source: Column, dest: Column) -> bool:
    return source.requires_approval_to_exit and dest.is_terminal_destination


def can_decide(source_approver_roles: list[str], actor_role: str) -> bool:
    """Any actor may decide when the column names no approver roles."""
    return not source_approver_roles or actor_role in source_approver_roles


def serialize_approval(row: MoveApprovalRow) -> MoveApproval:
    return MoveApproval(
        approval_id=row.approval_id,
        board_id=row.board_id,
        proposal_id=row.proposal_id,
        source_column_id=row.source_column_id,
        dest_column_id=row.dest_column_id,
        destination_index=row.destination_index,
        requested_by=row.requested_by,
        requested_role=row.requested_role,
        approver_roles=list(row.approver_roles or []),
        status=row.status,
        decided_by=row.decided_by,
        decider_role=row.decider_role,
        reason=row.reason,
        decided_at=row.decided_at,
        expires_at=row.expires_at,
        created_at=row.created_at,
        trace_id=row.trace_id,
    )


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def open_approval(
    session: AsyncSession,
    board_id: str,
    request: MoveRequest,
    source: Column,
    expiry_hours: int,
    trace_id: str | None = None,
) -> MoveApprovalRow:
    """Suspend a move as a pending approval. No proposal field is touched."""
    repo = MoveApprovalRepository(session)
    now = datetime.now(timezone.utc)
    return await repo.create(
        approval_id=generate_id("mvappr_"),
        board_id=board_id,
        proposal_id=request.proposal_id,
        source_column_id=request.source_column_id,
        dest_column_id=request.dest_column_id,
        destination_index=request.destination_index,
        requested_by=request.actor_id,
        requested_role=request.actor_role,
        approver_roles=list(source.approver_roles),
        status=MoveApprovalStatus.PENDING,
        expires_at=now + timedelta(hours=expiry_hours) if expiry_hours > 0 else None,
        trace_id=trace_id,
    )


def is_expired(row: MoveApprovalRow, now: datetime | None = None) -> bool:
    if row.status != MoveApprovalStatus.PENDING or row.expires_at is None:
        return False
    return _as_aware(row.expires_at) <= (now or datetime.now(timezone.utc))


async def apply_expiry(session: AsyncSession, row: MoveApprovalRow) -> MoveApprovalRow:
    """Mark a pending approval past ``expires_at`` as expired (lazy expiry)."""
    if is_expired(row):
        await MoveApprovalRepository(session).update(row, status=MoveApprovalStatus.EXPIRED)
        await session.commit()
    return row


async def get_open_approval(session: AsyncSession, approval_id: str) -> MoveApprovalRow:
    """Load an approval that can still be decided or cancelled.

    A pending approval past ``expires_at`` is marked expired and refused.
    """
    row = await MoveApprovalRepository(session).get(approval_id)
    if row is None:
        raise NotFoundError("Move approval", approval_id)
    row = await apply_expiry(session, row)
    if row.status != MoveApprovalStatus.PENDING:
        raise ConflictError(f"Move approval is already '{row.status}'")
    return row


def check_decider(row: MoveApprovalRow, decision: MoveApprovalDecision) -> None:
    """Refuse decisions from actors outside the approver roles.

    The approval stays pending so a permitted approver can still act on it.
    """
    if not can_decide(list(row.approver_roles or []), decision.decider_role):
        raise PermissionDeniedError(
            "Only approvers may decide this move",
            details={
                "approval_id": row.approval_id,
                "actor_role": decision.decider_role,
                "required_roles": list(row.approver_roles or []),
            },
        )


async def record_decision(
    session: AsyncSession,
    row: MoveApprovalRow,
    decision: MoveApprovalDecision,
) -> MoveApprovalRow:
    status = (
        MoveApprovalStatus.APPROVED
        if decision.decision == ApprovalDecisionValue.APPROVE
        else MoveApprovalStatus.REJECTED
    )
    return await MoveApprovalRepository(session).update(
        row,
        status=status,
        decided_by=decision.decided_by,
        decider_role=decision.decider_role,
        reason=decision.reason,
        decided_at=datetime.now(timezone.utc),
    )


async def cancel_approval(session: AsyncSession, approval_id: str, cancelled_by: str) -> MoveApprovalRow:
    """Withdraw a pending move. The proposal is left exactly as it was."""
    row = await get_open_approval(session, approval_id)
    return await MoveApprovalRepository(session).update(
        row,
        status=MoveApprovalStatus.CANCELLED,
        decided_by=cancelled_by,
        decided_at=datetime.now(timezone.utc),
    )
