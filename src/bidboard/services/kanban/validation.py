"""Board configuration checks run when a board is loaded or saved.

Structural problems are reported as errors and block use of the board.
Suspicious but workable setups are reported as warnings.
"""

from collections import Counter
from dataclasses import dataclass, field

import pydantic
import structlog

from bidboard.errors.exceptions import ConfigurationError
from bidboard.models.board import BoardConfig, LockedPhaseColumn, MasterStatusColumn
from bidboard.models.enums import ColumnType, ProposalStatus, WipLimitType

logger = structlog.get_logger(__name__)


@dataclass
class BoardValidationReport:
    board_id: str | None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    is_legacy: bool = False

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {
            "board_id": self.board_id,
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "is_legacy": self.is_legacy,
        }


def is_legacy_board(board: BoardConfig) -> bool:
    """Old status-only boards: every column maps a status and none is terminal."""
    if board.is_master_board or not board.columns:
        return False
    return all(
        c.type == ColumnType.DEFAULT_STATUS and not c.is_terminal for c in board.columns
    )


def validate_board(board: BoardConfig) -> BoardValidationReport:
    report = BoardValidationReport(board_id=board.board_id)

    if not board.columns:
        report.errors.append("Board has no columns")
        return report

    for column_id, count in Counter(c.id for c in board.columns).items():
        if count > 1:
            report.errors.append(f"Column id '{column_id}' is used by {count} columns")

    for order, count in Counter(c.order for c in board.columns).items():
        if count > 1:
            report.errors.append(f"Column order {order} is used by {count} columns")

    master_columns = [c for c in board.columns if isinstance(c, MasterStatusColumn)]
    if board.is_master_board:
        _check_master(board, master_columns, report)
    elif master_columns:
        ids = ", ".join(c.id for c in master_columns)
        report.errors.append(f"Master status columns on a type-specific board: {ids}")

    phase_columns: dict[str, list[str]] = {}
    for column in board.columns:
        if isinstance(column, LockedPhaseColumn):
            phase_columns.setdefault(column.phase_mapping, []).append(column.id)
    for phase, ids in phase_columns.items():
        if len(ids) > 1:
            report.warnings.append(
                f"Phase '{phase}' is mapped by several columns ({', '.join(ids)}); "
                "proposals without a stage reference cannot be placed"
            )

    has_terminal = any(c.is_terminal_destination for c in board.columns)
    for column in board.columns:
        if column.requires_approval_to_exit and not has_terminal:
            report.warnings.append(
                f"Column '{column.id}' requires approval to exit but the board has no terminal column"
            )
        if column.wip_limit_type == WipLimitType.HARD and column.wip_limit == 0:
            report.warnings.append(f"Column '{column.id}' has a hard WIP limit of 0 (disabled)")

    if board.initial_column() is None:
        report.errors.append("Board has no non-terminal column for new proposals")

    report.is_legacy = is_legacy_board(board)
    if report.is_legacy:
        report.warnings.append("Board uses the legacy status-only layout; migration available")
    return report


def _check_master(
    board: BoardConfig,
    master_columns: list[MasterStatusColumn],
    report: BoardValidationReport,
) -> None:
    if not master_columns:
        report.errors.append("Master board has no master status columns")
        return

    claims: dict[str, list[str]] = {}
    for column in master_columns:
        for status in column.status_mapping:
            claims.setdefault(status, []).append(column.id)

    for status, ids in claims.items():
        if len(ids) > 1:
            report.errors.append(
                f"Status '{status}' is claimed by several master columns: {', '.join(ids)}"
            )

    first = board.ordered_columns()[0].id
    for status in ProposalStatus:
        if status not in claims:
            report.warnings.append(
                f"Status '{status}' is not claimed by any column; such proposals fall back to '{first}'"
            )


def parse_board(record: dict) -> BoardConfig:
    """Parse a stored board record; ConfigurationError when malformed."""
    try:
        return BoardConfig.model_validate(record)
    except pydantic.ValidationError as exc:
        raise ConfigurationError(
            f"Board '{record.get('board_id')}' has an invalid configuration",
            details={"errors": exc.errors(include_url=False, include_input=False, include_context=False)},
        ) from exc


def load_board(record: dict) -> BoardConfig:
    """Parse and validate a stored board record.

    Raises ConfigurationError when the record is malformed or fails a
    blocking check; warnings are logged.
    """
    board = parse_board(record)
    report = validate_board(board)
    if not report.valid:
        logger.error("board_configuration_invalid", board_id=board.board_id, errors=report.errors)
        raise ConfigurationError(
            f"Board '{board.board_id}' needs administrator attention",
            details=report.to_dict(),
        )
    for warning in report.warnings:
        logger.warning("board_configuration_warning", board_id=board.board_id, warning=warning)
    return board
