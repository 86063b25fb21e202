"""Proposal table."""

from sqlalchemy import JSON, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bidboard.db.base import Base, TimestampMixin, VersionedMixin


class ProposalRow(Base, TimestampMixin, VersionedMixin):
    __tablename__ = "proposals"

    proposal_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    proposal_name: Mapped[str] = mapped_column(String(500), nullable=False)
    proposal_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="evaluating")
    current_phase: Mapped[str | None] = mapped_column(String(20), nullable=True)
    custom_workflow_stage_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    manual_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_stage_checklist_status: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    action_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    action_required_description: Mapped[str | None] = mapped_column(Text, nullable=True)
