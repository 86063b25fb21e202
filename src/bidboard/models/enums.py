"""String enums shared by the board, proposal and move models."""

from enum import StrEnum


class ProposalStatus(StrEnum):
    EVALUATING = "evaluating"
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"
    WON = "won"
    LOST = "lost"
    ARCHIVED = "archived"


class Phase(StrEnum):
    PHASE1 = "phase1"
    PHASE2 = "phase2"
    PHASE3 = "phase3"
    PHASE4 = "phase4"
    PHASE5 = "phase5"
    PHASE6 = "phase6"
    PHASE7 = "phase7"


class ColumnType(StrEnum):
    LOCKED_PHASE = "locked_phase"
    CUSTOM_STAGE = "custom_stage"
    DEFAULT_STATUS = "default_status"
    MASTER_STATUS = "master_status"


class WipLimitType(StrEnum):
    SOFT = "soft"
    HARD = "hard"


class ChecklistItemKind(StrEnum):
    SYSTEM_CHECK = "system_check"
    MANUAL_CHECK = "manual_check"
    MODAL_TRIGGER = "modal_trigger"
    AI_TRIGGER = "ai_trigger"


class OrgRole(StrEnum):
    ORGANIZATION_OWNER = "organization_owner"
    PROPOSAL_MANAGER = "proposal_manager"
    LEAD_WRITER = "lead_writer"
    CONTRIBUTOR = "contributor"
    REVIEWER = "reviewer"
    VIEWER = "viewer"


class AssignmentRule(StrEnum):
    CUSTOM_STAGE_REFERENCE = "custom_stage_reference"
    TERMINAL_STATUS = "terminal_status"
    CURRENT_PHASE = "current_phase"
    DEFAULT_STATUS = "default_status"
    MASTER_STATUS = "master_status"
    MASTER_FALLBACK = "master_fallback"


class GateRule(StrEnum):
    PROTECTED_SOURCE = "protected_source"
    RESTRICTED_DESTINATION = "restricted_destination"
    WIP_LIMIT_REACHED = "wip_limit_reached"


class MoveOutcome(StrEnum):
    COMPLETED = "completed"
    PARTIAL = "partial"
    APPROVAL_PENDING = "approval_pending"


class MoveApprovalStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ApprovalDecisionValue(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"


class ApprovalCommentType(StrEnum):
    QUESTION = "question"
    JUSTIFICATION = "justification"
    NOTE = "note"
