"""Column assignment: maps every proposal to exactly one board column.

Type-specific boards evaluate four rules in priority order, first match wins:

1. ``custom_workflow_stage_id`` names an existing custom/locked-phase column
2. a terminal status (submitted/won/lost/archived) matches a terminal
   default-status column
3. ``current_phase`` matches a locked-phase column
4. ``status`` matches a default-status column

Master boards match ``status`` against the ``status_mapping`` of master
columns and fall back to the first column by order when nothing claims it.

A rule that matches more than one column is ambiguous: the proposal is left
unassigned with a diagnostic rather than shown twice.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import structlog

from bidboard.models.board import BoardConfig, Column
from bidboard.models.enums import AssignmentRule, ColumnType
from bidboard.models.proposal import TERMINAL_STATUSES, Proposal

logger = structlog.get_logger(__name__)

_STAGE_REFERENCE_TYPES = (ColumnType.CUSTOM_STAGE, ColumnType.LOCKED_PHASE)


@dataclass(frozen=True)
class Resolution:
    proposal_id: str
    column_id: str | None
    rule: AssignmentRule | None = None
    diagnostic: str | None = None

    @property
    def assigned(self) -> bool:
        return self.column_id is not None


def sort_key(proposal: Proposal) -> tuple[int, str]:
    """Sibling order within a column: manual order, then id for ties."""
    return (proposal.manual_order, proposal.proposal_id)


def resolve(proposal: Proposal, columns: Sequence[Column], is_master_board: bool) -> str | None:
    """Return the id of the column the proposal belongs to, or None."""
    return resolve_detailed(proposal, columns, is_master_board).column_id


def resolve_detailed(
    proposal: Proposal, columns: Sequence[Column], is_master_board: bool
) -> Resolution:
    ordered = sorted(columns, key=lambda c: c.order)
    if not ordered:
        return Resolution(proposal.proposal_id, None, diagnostic="board has no columns")
    if is_master_board:
        return _resolve_master(proposal, ordered)
    return _resolve_type_specific(proposal, ordered)


def _resolve_master(proposal: Proposal, ordered: list[Column]) -> Resolution:
    claims = [
        c for c in ordered
        if c.type == ColumnType.MASTER_STATUS and proposal.status in c.status_mapping
    ]
    if len(claims) == 1:
        return Resolution(proposal.proposal_id, claims[0].id, AssignmentRule.MASTER_STATUS)
    if len(claims) > 1:
        return _ambiguous(proposal, AssignmentRule.MASTER_STATUS, claims)
    return Resolution(
        proposal.proposal_id,
        ordered[0].id,
        AssignmentRule.MASTER_FALLBACK,
        diagnostic=(
            f"status '{proposal.status}' is not claimed by any master column; "
            f"placed in first column '{ordered[0].id}'"
        ),
    )


def _resolve_type_specific(proposal: Proposal, ordered: list[Column]) -> Resolution:
    pid = proposal.proposal_id

    if proposal.custom_workflow_stage_id:
        for col in ordered:
            if col.id == proposal.custom_workflow_stage_id and col.type in _STAGE_REFERENCE_TYPES:
                return Resolution(pid, col.id, AssignmentRule.CUSTOM_STAGE_REFERENCE)

    if proposal.status in TERMINAL_STATUSES:
        matches = [
            c for c in ordered
            if c.type == ColumnType.DEFAULT_STATUS
            and c.default_status_mapping == proposal.status
            and c.is_terminal
        ]
        picked = _pick(proposal, AssignmentRule.TERMINAL_STATUS, matches)
        if picked is not None:
            return picked

    if proposal.current_phase:
        matches = [
            c for c in ordered
            if c.type == ColumnType.LOCKED_PHASE and c.phase_mapping == proposal.current_phase
        ]
        picked = _pick(proposal, AssignmentRule.CURRENT_PHASE, matches)
        if picked is not None:
            return picked

    matches = [
        c for c in ordered
        if c.type == ColumnType.DEFAULT_STATUS and c.default_status_mapping == proposal.status
    ]
    picked = _pick(proposal, AssignmentRule.DEFAULT_STATUS, matches)
    if picked is not None:
        return picked

    return Resolution(
        pid,
        None,
        diagnostic=(
            f"no column matches status='{proposal.status}' "
            f"phase='{proposal.current_phase}' stage='{proposal.custom_workflow_stage_id}'"
        ),
    )


def _pick(proposal: Proposal, rule: AssignmentRule, matches: list[Column]) -> Resolution | None:
    if not matches:
        return None
    if len(matches) > 1:
        return _ambiguous(proposal, rule, matches)
    return Resolution(proposal.proposal_id, matches[0].id, rule)


def _ambiguous(proposal: Proposal, rule: AssignmentRule, matches: list[Column]) -> Resolution:
    ids = ", ".join(c.id for c in matches)
    return Resolution(
        proposal.proposal_id,
        None,
        rule,
        diagnostic=f"rule '{rule}' matches multiple columns: {ids}",
    )


@dataclass
class BoardAssignment:
    """Canonical column membership for one board and one proposal list."""

    board: BoardConfig
    proposals: list[Proposal]
    members: dict[str, list[Proposal]] = field(default_factory=dict)
    unassigned: list[Proposal] = field(default_factory=list)
    resolutions: dict[str, Resolution] = field(default_factory=dict)

    @property
    def diagnostics(self) -> list[str]:
        return [
            f"{r.proposal_id}: {r.diagnostic}"
            for r in self.resolutions.values()
            if r.diagnostic
        ]

    def column_of(self, proposal_id: str) -> str | None:
        resolution = self.resolutions.get(proposal_id)
        return resolution.column_id if resolution else None

    def visible_members(self, column_id: str) -> list[Proposal]:
        """Membership as rendered.

        Terminal columns show every proposal whose status they represent,
        regardless of stage references. The canonical map is not changed.
        """
        column = self.board.column(column_id)
        if column is None:
            return []
        if column.is_terminal:
            statuses = column.mapped_statuses
            return sorted((p for p in self.proposals if p.status in statuses), key=sort_key)
        return list(self.members.get(column_id, []))


def assign_board(board: BoardConfig, proposals: Iterable[Proposal]) -> BoardAssignment:
    """Resolve every proposal on the board into its column."""
    proposals = list(proposals)
    assignment = BoardAssignment(
        board=board,
        proposals=proposals,
        members={c.id: [] for c in board.ordered_columns()},
    )
    for proposal in proposals:
        resolution = resolve_detailed(proposal, board.columns, board.is_master_board)
        assignment.resolutions[proposal.proposal_id] = resolution
        if resolution.assigned:
            assignment.members[resolution.column_id].append(proposal)
            if resolution.diagnostic:
                logger.warning(
                    "proposal_resolution_fallback",
                    board_id=board.board_id,
                    proposal_id=proposal.proposal_id,
                    column_id=resolution.column_id,
                    diagnostic=resolution.diagnostic,
                )
        else:
            assignment.unassigned.append(proposal)
            logger.warning(
                "proposal_unassigned",
                board_id=board.board_id,
                proposal_id=proposal.proposal_id,
                diagnostic=resolution.diagnostic,
            )
    for members in assignment.members.values():
        members.sort(key=sort_key)
    return assignment
