"""Kanban board configuration table."""

from sqlalchemy import JSON, Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bidboard.db.base import Base, TimestampMixin


class KanbanConfigRow(Base, TimestampMixin):
    __tablename__ = "kanban_configs"
    __table_args__ = (
        UniqueConstraint("organization_id", "board_type", name="uq_kanban_configs_org_type"),
    )

    board_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    board_name: Mapped[str] = mapped_column(String(200), nullable=False)
    board_type: Mapped[str] = mapped_column(String(50), nullable=False)
    is_master_board: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applies_to_proposal_types: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    # Named board_columns to avoid shadowing Table.columns on the mapped class
    board_columns: Mapped[list] = mapped_column("board_columns", JSON, nullable=False, default=list)
    collapsed_column_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
