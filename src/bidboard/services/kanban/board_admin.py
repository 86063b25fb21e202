"""Board administration: column add / update / delete / reorder and view state.

Locked columns are system columns: they can never be renamed, reordered or
deleted. A column still holding proposals cannot be deleted.
"""

import pydantic
import structlog

from bidboard.errors.exceptions import ConflictError, NotFoundError, ValidationError
from bidboard.models.board import BoardConfig, Column, ColumnRename, column_adapter
from bidboard.models.proposal import Proposal
from bidboard.repositories.record_store import KANBAN_CONFIG, RecordStore
from bidboard.services.kanban.resolver import assign_board
from bidboard.services.kanban.validation import validate_board

logger = structlog.get_logger(__name__)


def _require(board: BoardConfig, column_id: str) -> Column:
    column = board.column(column_id)
    if column is None:
        raise NotFoundError("Column", column_id)
    return column


def _renumber(columns: list[Column]) -> list[Column]:
    return [c.model_copy(update={"order": i}) for i, c in enumerate(columns)]


def _checked(board: BoardConfig, columns: list[Column], **updates) -> BoardConfig:
    updated = board.model_copy(update={"columns": columns, **updates})
    report = validate_board(updated)
    if not report.valid:
        raise ValidationError("Column change would leave the board invalid", details=report.to_dict())
    return updated


def add_column(board: BoardConfig, column_data: dict, position: int | None = None) -> BoardConfig:
    """Insert a new column at ``position`` (end of board by default)."""
    try:
        column = column_adapter.validate_python({"order": 0, **column_data, "is_locked": False})
    except pydantic.ValidationError as exc:
        raise ValidationError(
            "Invalid column definition",
            details={"errors": exc.errors(include_url=False, include_input=False, include_context=False)},
        ) from exc
    if board.column(column.id) is not None:
        raise ConflictError(f"Column '{column.id}' already exists on this board")

    ordered = board.ordered_columns()
    index = len(ordered) if position is None else min(position, len(ordered))
    ordered.insert(index, column)
    return _checked(board, _renumber(ordered))


def update_column(board: BoardConfig, column_id: str, changes: ColumnRename) -> BoardConfig:
    """Rename a column or change its settings."""
    column = _require(board, column_id)
    fields = {k: v for k, v in changes.model_dump(exclude_unset=True).items() if v is not None}
    if "label" in fields and column.is_locked and fields["label"] != column.label:
        raise ValidationError(
            f"Column '{column.label}' is locked and cannot be renamed",
            details={"column_id": column_id},
        )
    if not fields:
        return board
    updated = column_adapter.validate_python({**column.model_dump(), **fields})
    columns = [updated if c.id == column_id else c for c in board.columns]
    return _checked(board, columns)


def delete_column(board: BoardConfig, column_id: str, proposals: list[Proposal]) -> BoardConfig:
    column = _require(board, column_id)
    if column.is_locked:
        raise ValidationError(
            f"Column '{column.label}' is locked and cannot be deleted",
            details={"column_id": column_id},
        )
    assignment = assign_board(board, proposals)
    members = assignment.visible_members(column_id)
    if members:
        raise ConflictError(
            f"Column '{column.label}' still holds {len(members)} proposal(s); move them first",
            details={"column_id": column_id, "count": len(members)},
        )
    remaining = [c for c in board.ordered_columns() if c.id != column_id]
    collapsed = [cid for cid in board.collapsed_column_ids if cid != column_id]
    return _checked(board, _renumber(remaining), collapsed_column_ids=collapsed)


def reorder_columns(board: BoardConfig, column_ids: list[str]) -> BoardConfig:
    """Apply a full new column order; locked columns must keep their positions."""
    current = board.ordered_columns()
    if sorted(column_ids) != sorted(c.id for c in current):
        raise ValidationError(
            "Reorder must list every column of the board exactly once",
            details={"expected": [c.id for c in current], "received": column_ids},
        )
    for index, column in enumerate(current):
        if column.is_locked and column_ids[index] != column.id:
            raise ValidationError(
                f"Column '{column.label}' is locked and cannot be reordered",
                details={"column_id": column.id, "position": index},
            )
    by_id = {c.id: c for c in current}
    return _checked(board, _renumber([by_id[cid] for cid in column_ids]))


def set_collapsed(board: BoardConfig, column_ids: list[str]) -> BoardConfig:
    unknown = [cid for cid in column_ids if board.column(cid) is None]
    if unknown:
        raise ValidationError("Unknown column ids", details={"column_ids": unknown})
    # De-duplicate, keep caller order
    collapsed = list(dict.fromkeys(column_ids))
    return board.model_copy(update={"collapsed_column_ids": collapsed})


async def save_board(store: RecordStore, board: BoardConfig) -> dict:
    """Persist column list and view state of an edited board."""
    record = await store.update(
        KANBAN_CONFIG,
        board.board_id,
        {
            "columns": [c.model_dump(mode="json") for c in board.ordered_columns()],
            "collapsed_column_ids": list(board.collapsed_column_ids),
        },
    )
    logger.info("board_saved", board_id=board.board_id, columns=len(board.columns))
    return record
