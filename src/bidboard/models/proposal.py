"""Pydantic models for proposals and their per-column checklist progress."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from bidboard.models.enums import Phase, ProposalStatus

# Statuses that route a proposal to a terminal column on type-specific boards
TERMINAL_STATUSES = frozenset(
    {
        ProposalStatus.SUBMITTED,
        ProposalStatus.WON,
        ProposalStatus.LOST,
        ProposalStatus.ARCHIVED,
    }
)

PHASE_STATUS = {
    Phase.PHASE1: ProposalStatus.EVALUATING,
    Phase.PHASE2: ProposalStatus.EVALUATING,
    Phase.PHASE3: ProposalStatus.EVALUATING,
    Phase.PHASE4: ProposalStatus.EVALUATING,
    Phase.PHASE5: ProposalStatus.DRAFT,
    Phase.PHASE6: ProposalStatus.DRAFT,
    Phase.PHASE7: ProposalStatus.IN_PROGRESS,
}


def status_for_phase(phase: Phase) -> ProposalStatus:
    """Derive the proposal status implied by a workflow phase."""
    return PHASE_STATUS[Phase(phase)]


class ChecklistEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    completed: bool = False
    completed_at: datetime | None = None
    completed_by: str | None = None


# column id -> checklist item id -> entry
ChecklistStatus = dict[str, dict[str, ChecklistEntry]]


class Proposal(BaseModel):
    """A bid moving through a board."""

    model_config = ConfigDict(extra="forbid")

    proposal_id: str = Field(..., pattern=r"^prop_[A-Za-z0-9_-]+$")
    organization_id: str
    proposal_name: str = Field(..., min_length=1, max_length=500)
    proposal_type: str | None = None
    status: ProposalStatus = ProposalStatus.EVALUATING
    current_phase: Phase | None = None
    custom_workflow_stage_id: str | None = None
    manual_order: int = 0
    current_stage_checklist_status: ChecklistStatus = Field(default_factory=dict)
    action_required: bool = False
    action_required_description: str | None = None
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProposalCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    proposal_name: str = Field(..., min_length=1, max_length=500)
    proposal_type: str | None = None
    actor_id: str | None = None


class ChecklistToggle(BaseModel):
    model_config = ConfigDict(extra="forbid")

    completed: bool
    actor_id: str
