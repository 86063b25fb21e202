"""Role and WIP-limit checks run before a move touches any record."""

from bidboard.errors.exceptions import BidBoardError, CapacityError, PermissionDeniedError
from bidboard.models.board import Column
from bidboard.models.enums import GateRule, WipLimitType
from bidboard.models.move import GateDecision
from bidboard.models.proposal import Proposal


def can_move(
    proposal: Proposal,
    source: Column,
    dest: Column,
    actor_role: str,
    destination_count: int,
) -> GateDecision:
    """Check a move against role allow-lists and hard WIP limits.

    Checks short-circuit on the first failure. ``destination_count`` is the
    current visible membership of ``dest``.
    """
    if source.can_drag_from_here_roles and actor_role not in source.can_drag_from_here_roles:
        return GateDecision(
            allowed=False,
            failed_rule=GateRule.PROTECTED_SOURCE,
            reason=f"Protected source column '{source.label}'",
            details={
                "proposal_id": proposal.proposal_id,
                "column_id": source.id,
                "column": source.label,
                "actor_role": actor_role,
                "required_roles": list(source.can_drag_from_here_roles),
            },
        )

    if dest.can_drag_to_here_roles and actor_role not in dest.can_drag_to_here_roles:
        return GateDecision(
            allowed=False,
            failed_rule=GateRule.RESTRICTED_DESTINATION,
            reason=f"Restricted destination column '{dest.label}'",
            details={
                "proposal_id": proposal.proposal_id,
                "column_id": dest.id,
                "column": dest.label,
                "actor_role": actor_role,
                "required_roles": list(dest.can_drag_to_here_roles),
            },
        )

    if (
        dest.wip_limit_type == WipLimitType.HARD
        and dest.wip_limit > 0
        and destination_count >= dest.wip_limit
        and source.id != dest.id
    ):
        return GateDecision(
            allowed=False,
            failed_rule=GateRule.WIP_LIMIT_REACHED,
            reason=f"WIP limit reached in '{dest.label}' ({destination_count}/{dest.wip_limit})",
            details={
                "proposal_id": proposal.proposal_id,
                "column_id": dest.id,
                "column": dest.label,
                "current": destination_count,
                "limit": dest.wip_limit,
            },
        )

    return GateDecision(allowed=True)


def wip_advisory(dest: Column, new_count: int) -> str | None:
    """One-time advisory when a soft limit is exceeded by a completed move."""
    if dest.wip_limit_type != WipLimitType.SOFT or dest.wip_limit <= 0:
        return None
    if new_count <= dest.wip_limit:
        return None
    return (
        f"'{dest.label}' is over its WIP limit ({new_count}/{dest.wip_limit}); "
        "consider finishing work before pulling more in"
    )


def decision_error(decision: GateDecision) -> BidBoardError:
    """Exception matching a denied gate decision."""
    if decision.failed_rule == GateRule.WIP_LIMIT_REACHED:
        return CapacityError(decision.reason or "WIP limit reached", details=decision.details)
    return PermissionDeniedError(decision.reason or "Move not permitted", details=decision.details)
