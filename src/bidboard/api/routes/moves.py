"""Column move route."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.dependencies import get_db, get_move_guard, get_trace_id
from bidboard.logging_config import bind_request_context
from bidboard.models.enums import MoveOutcome
from bidboard.models.move import MoveRequest
from bidboard.services.kanban.move_guard import MoveGuard
from bidboard.services.kanban.workflow import request_move

router = APIRouter(tags=["Moves"])


@router.post("/boards/{board_id}/moves")
async def move_proposal(
    board_id: str,
    body: MoveRequest,
    db: AsyncSession = Depends(get_db),
    guard: MoveGuard = Depends(get_move_guard),
    trace_id: str = Depends(get_trace_id),
):
    """Move a proposal between (or within) columns.

    Returns 200 with the move result, or 202 when the move is suspended
    pending approval.
    """
    bind_request_context(trace_id, board_id=board_id, actor_id=body.actor_id)
    result = await request_move(db, guard, board_id, body, trace_id)
    status_code = 202 if result.outcome == MoveOutcome.APPROVAL_PENDING else 200
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))
