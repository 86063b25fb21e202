"""Kanban board configuration repository."""

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.db.models.board import KanbanConfigRow
from bidboard.repositories.base import BaseRepository


class KanbanConfigRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, KanbanConfigRow)

    async def get(self, board_id: str) -> KanbanConfigRow | None:
        return await self.get_by_id("board_id", board_id)

    async def get_by_type(self, organization_id: str, board_type: str) -> KanbanConfigRow | None:
        stmt = select(KanbanConfigRow).where(
            and_(
                KanbanConfigRow.organization_id == organization_id,
                KanbanConfigRow.board_type == board_type,
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_organization(self, organization_id: str) -> list[KanbanConfigRow]:
        stmt = (
            select(KanbanConfigRow)
            .where(KanbanConfigRow.organization_id == organization_id)
            .order_by(KanbanConfigRow.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
