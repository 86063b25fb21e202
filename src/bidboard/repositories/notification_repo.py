"""Notification repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.db.models.notification import NotificationRow
from bidboard.repositories.base import BaseRepository


class NotificationRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, NotificationRow)

    async def list_by_proposal(self, proposal_id: str, limit: int = 50) -> list[NotificationRow]:
        stmt = (
            select(NotificationRow)
            .where(NotificationRow.proposal_id == proposal_id)
            .order_by(NotificationRow.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
