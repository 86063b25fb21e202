"""Proposal creation and checklist routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.dependencies import get_db
from bidboard.models.proposal import ChecklistToggle, ProposalCreate
from bidboard.repositories.notification_repo import NotificationRepository
from bidboard.services.kanban.workflow import create_proposal, get_proposal, toggle_checklist_item

router = APIRouter(tags=["Proposals"])


@router.post("/boards/{board_id}/proposals", status_code=201)
async def create_board_proposal(
    board_id: str,
    body: ProposalCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    proposal = await create_proposal(db, board_id, body)
    return proposal.model_dump(mode="json")


@router.get("/proposals/{proposal_id}")
async def get_proposal_detail(proposal_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    proposal = await get_proposal(db, proposal_id)
    return proposal.model_dump(mode="json")


@router.get("/proposals/{proposal_id}/notifications")
async def list_proposal_notifications(
    proposal_id: str,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    await get_proposal(db, proposal_id)
    rows = await NotificationRepository(db).list_by_proposal(proposal_id, limit=limit)
    return [
        {
            "notification_id": r.notification_id,
            "event_type": r.event_type,
            "title": r.title,
            "body": r.body,
            "severity": r.severity,
            "read": r.read,
            "link": r.link,
            "created_at": r.created_at.isoformat() if r.created_at else None,
        }
        for r in rows
    ]


@router.post("/boards/{board_id}/proposals/{proposal_id}/checklist/{column_id}/{item_id}")
async def set_checklist_item(
    board_id: str,
    proposal_id: str,
    column_id: str,
    item_id: str,
    body: ChecklistToggle,
    db: AsyncSession = Depends(get_db),
) -> dict:
    proposal = await toggle_checklist_item(db, board_id, proposal_id, column_id, item_id, body)
    return proposal.model_dump(mode="json")
