"""Pydantic models for board configuration.

A column is a tagged union on ``type``: each variant carries only the mapping
field that is meaningful for it, so a locked-phase column without a phase or a
master column without a status list cannot be constructed.
"""

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from bidboard.models.enums import (
    ChecklistItemKind,
    Phase,
    ProposalStatus,
    WipLimitType,
)
from bidboard.models.proposal import status_for_phase

# Column ids: lowercase, starts with letter, allows digits/underscores/hyphens
_COLUMN_ID_PATTERN = r"^[a-z][a-z0-9_-]{0,63}$"

# Column ids treated as terminal destinations even when the flag is unset
TERMINAL_COLUMN_IDS = frozenset({"submitted", "won", "lost", "archived"})


class ChecklistItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1, max_length=100)
    label: str = Field(..., min_length=1)
    required: bool = False
    kind: ChecklistItemKind = ChecklistItemKind.MANUAL_CHECK
    associated_action: str | None = None
    order: int = 0


class _ColumnBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., pattern=_COLUMN_ID_PATTERN)
    label: str = Field(..., min_length=1, max_length=200)
    order: int = Field(..., ge=0)
    color: str | None = None
    is_locked: bool = False
    is_terminal: bool = False
    wip_limit: int = Field(0, ge=0)
    wip_limit_type: WipLimitType = WipLimitType.SOFT
    can_drag_from_here_roles: list[str] = Field(default_factory=list)
    can_drag_to_here_roles: list[str] = Field(default_factory=list)
    requires_approval_to_exit: bool = False
    approver_roles: list[str] = Field(default_factory=list)
    checklist_items: list[ChecklistItem] = Field(default_factory=list)

    @property
    def is_terminal_destination(self) -> bool:
        return self.is_terminal or self.id in TERMINAL_COLUMN_IDS


class LockedPhaseColumn(_ColumnBase):
    type: Literal["locked_phase"] = "locked_phase"
    phase_mapping: Phase

    @property
    def mapped_statuses(self) -> frozenset[ProposalStatus]:
        return frozenset({status_for_phase(self.phase_mapping)})


class CustomStageColumn(_ColumnBase):
    type: Literal["custom_stage"] = "custom_stage"

    @property
    def mapped_statuses(self) -> frozenset[ProposalStatus]:
        return frozenset({ProposalStatus.IN_PROGRESS})


class DefaultStatusColumn(_ColumnBase):
    type: Literal["default_status"] = "default_status"
    default_status_mapping: ProposalStatus

    @property
    def mapped_statuses(self) -> frozenset[ProposalStatus]:
        return frozenset({self.default_status_mapping})


class MasterStatusColumn(_ColumnBase):
    type: Literal["master_status"] = "master_status"
    # Ordered: the first entry is the status assigned on a move into the column
    status_mapping: list[ProposalStatus] = Field(..., min_length=1)

    @property
    def mapped_statuses(self) -> frozenset[ProposalStatus]:
        return frozenset(self.status_mapping)


Column = Annotated[
    Union[LockedPhaseColumn, CustomStageColumn, DefaultStatusColumn, MasterStatusColumn],
    Field(discriminator="type"),
]

column_adapter: TypeAdapter[Column] = TypeAdapter(Column)


class BoardConfig(BaseModel):
    """An organization's board: ordered columns plus view state."""

    model_config = ConfigDict(extra="forbid")

    board_id: str = Field(..., pattern=r"^board_[A-Za-z0-9_-]+$")
    organization_id: str
    board_name: str = Field(..., min_length=1, max_length=200)
    board_type: str = Field(..., pattern=r"^[a-z][a-z0-9_]{0,49}$")
    is_master_board: bool = False
    applies_to_proposal_types: list[str] = Field(default_factory=list)
    columns: list[Column] = Field(default_factory=list)
    collapsed_column_ids: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def ordered_columns(self) -> list[Column]:
        return sorted(self.columns, key=lambda c: c.order)

    def column(self, column_id: str) -> Column | None:
        for col in self.columns:
            if col.id == column_id:
                return col
        return None

    def initial_column(self) -> Column | None:
        """First non-terminal column by order, where new proposals land."""
        for col in self.ordered_columns():
            if not col.is_terminal_destination:
                return col
        return None

    def covers(self, proposal_type: str | None) -> bool:
        """Whether proposals of the given type belong on this board."""
        if self.is_master_board or not self.applies_to_proposal_types:
            return True
        return proposal_type in self.applies_to_proposal_types


class BoardCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    organization_id: str
    board_name: str = Field(..., min_length=1, max_length=200)
    board_type: str = Field(..., pattern=r"^[a-z][a-z0-9_]{0,49}$")
    is_master_board: bool = False
    applies_to_proposal_types: list[str] = Field(default_factory=list)
    columns: list[dict]


class BoardFromTemplate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    organization_id: str
    board_type: str
    board_name: str | None = None


class ColumnRename(BaseModel):
    model_config = ConfigDict(extra="forbid")

    label: str | None = Field(None, min_length=1, max_length=200)
    color: str | None = None
    wip_limit: int | None = Field(None, ge=0)
    wip_limit_type: WipLimitType | None = None
    can_drag_from_here_roles: list[str] | None = None
    can_drag_to_here_roles: list[str] | None = None
    requires_approval_to_exit: bool | None = None
    approver_roles: list[str] | None = None
    checklist_items: list[ChecklistItem] | None = None


class ColumnAdd(BaseModel):
    model_config = ConfigDict(extra="forbid")

    column: dict
    position: int | None = Field(None, ge=0)


class ColumnReorder(BaseModel):
    model_config = ConfigDict(extra="forbid")

    column_ids: list[str] = Field(..., min_length=1)


class CollapsedColumns(BaseModel):
    model_config = ConfigDict(extra="forbid")

    collapsed_column_ids: list[str]
