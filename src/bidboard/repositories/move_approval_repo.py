"""Move approval and comment repositories."""

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.db.models.move_approval import MoveApprovalCommentRow, MoveApprovalRow
from bidboard.repositories.base import BaseRepository


class MoveApprovalRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, MoveApprovalRow)

    async def get(self, approval_id: str) -> MoveApprovalRow | None:
        return await self.get_by_id("approval_id", approval_id)

    async def get_pending_for_proposal(self, proposal_id: str) -> MoveApprovalRow | None:
        stmt = select(MoveApprovalRow).where(
            and_(
                MoveApprovalRow.proposal_id == proposal_id,
                MoveApprovalRow.status == "pending",
            )
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_pending(self, board_id: str | None = None) -> list[MoveApprovalRow]:
        filters = {"status": "pending"}
        if board_id:
            filters["board_id"] = board_id
        return await self.list_filtered(filters, sort="created_at")


class MoveApprovalCommentRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, MoveApprovalCommentRow)

    async def list_by_approval(self, approval_id: str) -> list[MoveApprovalCommentRow]:
        return await self.list_filtered({"approval_id": approval_id}, sort="created_at")
