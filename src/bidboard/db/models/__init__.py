"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from bidboard.db.models.board import KanbanConfigRow
from bidboard.db.models.proposal import ProposalRow
from bidboard.db.models.move_approval import MoveApprovalCommentRow, MoveApprovalRow
from bidboard.db.models.notification import NotificationRow

__all__ = [
    "KanbanConfigRow",
    "ProposalRow",
    "MoveApprovalRow",
    "MoveApprovalCommentRow",
    "NotificationRow",
]
