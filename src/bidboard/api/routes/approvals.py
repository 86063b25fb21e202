"""Move approval routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.dependencies import get_db, get_move_guard
from bidboard.models.move import MoveApprovalCancel, MoveApprovalCommentCreate, MoveApprovalDecision
from bidboard.services.kanban.move_guard import MoveGuard
from bidboard.services.kanban.workflow import (
    add_approval_comment,
    cancel_move_approval,
    decide_move_approval,
    get_move_approval,
    list_approval_comments,
    list_pending_approvals,
)

router = APIRouter(tags=["Move Approvals"])


@router.get("/move-approvals/pending")
async def list_pending(
    board_id: str | None = None,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    approvals = await list_pending_approvals(db, board_id)
    return [a.model_dump(mode="json") for a in approvals]


@router.get("/move-approvals/{approval_id}")
async def get_approval(approval_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    approval = await get_move_approval(db, approval_id)
    return approval.model_dump(mode="json")


@router.post("/move-approvals/{approval_id}/decide")
async def decide(
    approval_id: str,
    body: MoveApprovalDecision,
    db: AsyncSession = Depends(get_db),
    guard: MoveGuard = Depends(get_move_guard),
) -> dict:
    approval, result = await decide_move_approval(db, guard, approval_id, body)
    return {
        "approval": approval.model_dump(mode="json"),
        "move": result.model_dump(mode="json") if result else None,
    }


@router.post("/move-approvals/{approval_id}/cancel")
async def cancel(
    approval_id: str,
    body: MoveApprovalCancel,
    db: AsyncSession = Depends(get_db),
    guard: MoveGuard = Depends(get_move_guard),
) -> dict:
    approval = await cancel_move_approval(db, guard, approval_id, body.cancelled_by)
    return approval.model_dump(mode="json")


@router.post("/move-approvals/{approval_id}/comments", status_code=201)
async def add_comment(
    approval_id: str,
    body: MoveApprovalCommentCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    return await add_approval_comment(db, approval_id, body)


@router.get("/move-approvals/{approval_id}/comments")
async def list_comments(approval_id: str, db: AsyncSession = Depends(get_db)) -> list[dict]:
    return await list_approval_comments(db, approval_id)
