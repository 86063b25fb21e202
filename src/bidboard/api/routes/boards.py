"""Board configuration, view and administration routes."""

import logging

import pydantic
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.dependencies import get_db, get_trace_id
from bidboard.errors.exceptions import ConflictError, ValidationError
from bidboard.models.board import (
    BoardConfig,
    BoardCreate,
    BoardFromTemplate,
    CollapsedColumns,
    ColumnAdd,
    ColumnRename,
    ColumnReorder,
)
from bidboard.repositories.board_repo import KanbanConfigRepository
from bidboard.repositories.record_store import KANBAN_CONFIG, SqlRecordStore, row_to_record
from bidboard.services.id_generator import generate_id
from bidboard.services.kanban import board_admin
from bidboard.services.kanban.migration import migrate_legacy_board
from bidboard.services.kanban.templates import create_board_from_template
from bidboard.services.kanban.validation import validate_board
from bidboard.services.kanban.workflow import (
    board_proposals,
    build_board_view,
    column_page,
    get_board,
    load_context,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Boards"])


def _board_out(board: BoardConfig) -> dict:
    return board.model_dump(mode="json")


@router.get("/boards")
async def list_boards(
    organization_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    rows = await KanbanConfigRepository(db).list_by_organization(organization_id)
    return [
        BoardConfig.model_validate(row_to_record(KANBAN_CONFIG, r)).model_dump(mode="json")
        for r in rows
    ]


@router.post("/boards", status_code=201)
async def create_board(
    body: BoardCreate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        board = BoardConfig(
            board_id=generate_id("board_"),
            organization_id=body.organization_id,
            board_name=body.board_name,
            board_type=body.board_type,
            is_master_board=body.is_master_board,
            applies_to_proposal_types=body.applies_to_proposal_types,
            columns=body.columns,
        )
    except pydantic.ValidationError as exc:
        raise ValidationError(
            "Invalid board configuration",
            details={"errors": exc.errors(include_url=False, include_input=False, include_context=False)},
        ) from exc

    report = validate_board(board)
    if not report.valid:
        raise ValidationError("Board configuration has blocking errors", details=report.to_dict())

    if await KanbanConfigRepository(db).get_by_type(body.organization_id, body.board_type):
        raise ConflictError(
            f"Organization already has a '{body.board_type}' board",
            details={"organization_id": body.organization_id, "board_type": body.board_type},
        )

    record = await SqlRecordStore(db).create(
        KANBAN_CONFIG,
        {
            "board_id": board.board_id,
            "organization_id": board.organization_id,
            "board_name": board.board_name,
            "board_type": board.board_type,
            "is_master_board": board.is_master_board,
            "applies_to_proposal_types": board.applies_to_proposal_types,
            "columns": [c.model_dump(mode="json") for c in board.ordered_columns()],
            "collapsed_column_ids": [],
        },
    )
    logger.info("Created board %s (%s)", board.board_id, board.board_type)
    return {**BoardConfig.model_validate(record).model_dump(mode="json"), "warnings": report.warnings}


@router.post("/boards/from-template")
async def create_from_template(
    body: BoardFromTemplate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    record, was_created = await create_board_from_template(
        db, body.organization_id, body.board_type, body.board_name
    )
    await db.commit()
    return {
        "board": BoardConfig.model_validate(record).model_dump(mode="json"),
        "was_created": was_created,
    }


@router.get("/boards/{board_id}")
async def get_board_config(board_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    board = await get_board(SqlRecordStore(db), board_id, strict=False)
    return _board_out(board)


@router.get("/boards/{board_id}/validation")
async def get_board_validation(board_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    board = await get_board(SqlRecordStore(db), board_id, strict=False)
    return validate_board(board).to_dict()


@router.get("/boards/{board_id}/view")
async def get_board_view(board_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    board, proposals = await load_context(SqlRecordStore(db), board_id)
    return build_board_view(board, proposals)


@router.get("/boards/{board_id}/columns/{column_id}/proposals")
async def get_column_proposals(
    board_id: str,
    column_id: str,
    loaded: int | None = Query(None, ge=0),
    more: bool = False,
    load_all: bool = False,
    db: AsyncSession = Depends(get_db),
) -> dict:
    board, proposals = await load_context(SqlRecordStore(db), board_id)
    return column_page(board, proposals, column_id, loaded=loaded, more=more, load_all=load_all)


# --- Administration ---


@router.post("/boards/{board_id}/columns", status_code=201)
async def add_column(
    board_id: str,
    body: ColumnAdd,
    db: AsyncSession = Depends(get_db),
) -> dict:
    store = SqlRecordStore(db)
    board = await get_board(store, board_id, strict=False)
    updated = board_admin.add_column(board, body.column, body.position)
    record = await board_admin.save_board(store, updated)
    return _board_out(BoardConfig.model_validate(record))


@router.patch("/boards/{board_id}/columns/{column_id}")
async def update_column(
    board_id: str,
    column_id: str,
    body: ColumnRename,
    db: AsyncSession = Depends(get_db),
) -> dict:
    store = SqlRecordStore(db)
    board = await get_board(store, board_id, strict=False)
    updated = board_admin.update_column(board, column_id, body)
    record = await board_admin.save_board(store, updated)
    return _board_out(BoardConfig.model_validate(record))


@router.delete("/boards/{board_id}/columns/{column_id}")
async def delete_column(
    board_id: str,
    column_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict:
    store = SqlRecordStore(db)
    board = await get_board(store, board_id, strict=False)
    proposals = await board_proposals(store, board)
    updated = board_admin.delete_column(board, column_id, proposals)
    record = await board_admin.save_board(store, updated)
    return _board_out(BoardConfig.model_validate(record))


@router.post("/boards/{board_id}/columns/reorder")
async def reorder_columns(
    board_id: str,
    body: ColumnReorder,
    db: AsyncSession = Depends(get_db),
) -> dict:
    store = SqlRecordStore(db)
    board = await get_board(store, board_id, strict=False)
    updated = board_admin.reorder_columns(board, body.column_ids)
    record = await board_admin.save_board(store, updated)
    return _board_out(BoardConfig.model_validate(record))


@router.put("/boards/{board_id}/collapsed")
async def set_collapsed_columns(
    board_id: str,
    body: CollapsedColumns,
    db: AsyncSession = Depends(get_db),
) -> dict:
    store = SqlRecordStore(db)
    board = await get_board(store, board_id, strict=False)
    updated = board_admin.set_collapsed(board, body.collapsed_column_ids)
    record = await board_admin.save_board(store, updated)
    return _board_out(BoardConfig.model_validate(record))


@router.post("/boards/{board_id}/migrate-legacy")
async def migrate_board(
    board_id: str,
    db: AsyncSession = Depends(get_db),
    trace_id: str = Depends(get_trace_id),
) -> dict:
    store = SqlRecordStore(db)
    board = await get_board(store, board_id, strict=False)
    proposals = await board_proposals(store, board)
    result = await migrate_legacy_board(store, board, proposals)
    logger.info(
        "Migrated legacy board %s: %d proposals, %d errors",
        board_id,
        result.proposals_migrated,
        len(result.errors),
    )
    return {**result.to_dict(), "trace_id": trace_id}
