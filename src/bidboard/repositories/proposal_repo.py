"""Proposal repository."""

from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.db.models.proposal import ProposalRow
from bidboard.repositories.base import BaseRepository


class ProposalRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ProposalRow)

    async def get(self, proposal_id: str) -> ProposalRow | None:
        return await self.get_by_id("proposal_id", proposal_id)

    async def list_by_organization(self, organization_id: str) -> list[ProposalRow]:
        return await self.list_filtered(
            {"organization_id": organization_id}, sort="-created_at"
        )
