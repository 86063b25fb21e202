"""Pydantic models for move requests, gate decisions and move results."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from bidboard.models.enums import (
    ApprovalCommentType,
    ApprovalDecisionValue,
    GateRule,
    MoveApprovalStatus,
    MoveOutcome,
)
from bidboard.models.proposal import Proposal


class MoveRequest(BaseModel):
    """A drag translated by the presentation layer into a column move."""

    model_config = ConfigDict(extra="forbid")

    proposal_id: str
    source_column_id: str
    dest_column_id: str
    destination_index: int = Field(..., ge=0)
    source_index: int | None = Field(None, ge=0)
    actor_id: str
    actor_role: str


class GateDecision(BaseModel):
    """Decision trace returned by the access and limit gate."""

    model_config = ConfigDict(extra="forbid")

    allowed: bool
    failed_rule: GateRule | None = None
    reason: str | None = None
    details: dict[str, Any] | None = None


class SiblingOrderUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    proposal_id: str
    manual_order: int


class MoveResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    outcome: MoveOutcome
    proposal: Proposal | None = None
    sibling_updates: list[SiblingOrderUpdate] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    advisories: list[str] = Field(default_factory=list)
    events: list[str] = Field(default_factory=list)
    approval_id: str | None = None


class MoveApproval(BaseModel):
    """A suspended move waiting for an approver's decision."""

    model_config = ConfigDict(extra="forbid")

    approval_id: str = Field(..., pattern=r"^mvappr_[A-Za-z0-9_-]+$")
    board_id: str
    proposal_id: str
    source_column_id: str
    dest_column_id: str
    destination_index: int
    requested_by: str
    requested_role: str
    approver_roles: list[str] = Field(default_factory=list)
    status: MoveApprovalStatus
    decided_by: str | None = None
    decider_role: str | None = None
    reason: str | None = None
    decided_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None
    trace_id: str | None = None


class MoveApprovalDecision(BaseModel):
    model_config = ConfigDict(extra="forbid")

    decision: ApprovalDecisionValue
    decided_by: str
    decider_role: str
    reason: str | None = Field(None, max_length=2000)


class MoveApprovalCancel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cancelled_by: str


class MoveApprovalCommentCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    author: str
    author_role: str
    content: str = Field(..., min_length=1, max_length=10000)
    comment_type: ApprovalCommentType = ApprovalCommentType.NOTE
