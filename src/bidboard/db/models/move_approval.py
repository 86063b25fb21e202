"""Move approval tables."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from bidboard.db.base import Base, TimestampMixin


class MoveApprovalRow(Base, TimestampMixin):
    __tablename__ = "move_approvals"

    approval_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    board_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("kanban_configs.board_id"), nullable=False, index=True
    )
    proposal_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("proposals.proposal_id"), nullable=False, index=True
    )
    source_column_id: Mapped[str] = mapped_column(String(64), nullable=False)
    dest_column_id: Mapped[str] = mapped_column(String(64), nullable=False)
    destination_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    requested_by: Mapped[str] = mapped_column(String(200), nullable=False)
    requested_role: Mapped[str] = mapped_column(String(100), nullable=False)
    approver_roles: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    decided_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    decider_role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reason: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    trace_id: Mapped[str | None] = mapped_column(String(128), nullable=True)


class MoveApprovalCommentRow(Base, TimestampMixin):
    __tablename__ = "move_approval_comments"

    comment_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    approval_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("move_approvals.approval_id"), nullable=False, index=True
    )
    author: Mapped[str] = mapped_column(String(200), nullable=False)
    author_role: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    comment_type: Mapped[str] = mapped_column(String(20), nullable=False, default="note")
