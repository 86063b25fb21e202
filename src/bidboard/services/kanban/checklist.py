"""Per-column checklist progress and the derived action-required flag."""

from datetime import datetime, timezone

from bidboard.errors.exceptions import NotFoundError, ValidationError
from bidboard.models.board import ChecklistItem, Column
from bidboard.models.enums import ChecklistItemKind
from bidboard.models.proposal import ChecklistEntry, ChecklistStatus, Proposal


def outstanding_items(proposal: Proposal, column: Column) -> list[ChecklistItem]:
    """Required, user-completable items not yet marked complete.

    System checks are informational and never count as outstanding.
    """
    progress = proposal.current_stage_checklist_status.get(column.id, {})
    outstanding = []
    for item in sorted(column.checklist_items, key=lambda i: i.order):
        if not item.required or item.kind == ChecklistItemKind.SYSTEM_CHECK:
            continue
        entry = progress.get(item.id)
        if entry is None or not entry.completed:
            outstanding.append(item)
    return outstanding


def is_action_required(proposal: Proposal, column: Column) -> bool:
    return bool(outstanding_items(proposal, column))


def action_required_fields(proposal: Proposal, column: Column) -> dict:
    """Derived ``action_required`` fields for a proposal sitting in ``column``."""
    items = outstanding_items(proposal, column)
    if not items:
        return {"action_required": False, "action_required_description": None}
    labels = ", ".join(i.label for i in items)
    noun = "item" if len(items) == 1 else "items"
    return {
        "action_required": True,
        "action_required_description": (
            f"{len(items)} required checklist {noun} outstanding in {column.label}: {labels}"
        ),
    }


def carry_checklist_state(status: ChecklistStatus, dest_column_id: str) -> ChecklistStatus:
    """Checklist state after entering ``dest_column_id``.

    Other columns keep their entries untouched; the destination starts empty
    only when the proposal has never recorded progress there.
    """
    carried = dict(status)
    if dest_column_id not in carried:
        carried[dest_column_id] = {}
    return carried


def set_item_completion(
    proposal: Proposal,
    column: Column,
    item_id: str,
    completed: bool,
    actor_id: str,
    now: datetime | None = None,
) -> dict:
    """Field updates marking one checklist item complete or incomplete."""
    item = next((i for i in column.checklist_items if i.id == item_id), None)
    if item is None:
        raise NotFoundError("Checklist item", f"{column.id}/{item_id}")
    if item.kind == ChecklistItemKind.SYSTEM_CHECK:
        raise ValidationError(
            f"Checklist item '{item.label}' is a system check and cannot be toggled",
            details={"column_id": column.id, "item_id": item_id},
        )

    now = now or datetime.now(timezone.utc)
    status = dict(proposal.current_stage_checklist_status)
    column_progress = dict(status.get(column.id, {}))
    column_progress[item_id] = ChecklistEntry(
        completed=completed,
        completed_at=now if completed else None,
        completed_by=actor_id if completed else None,
    )
    status[column.id] = column_progress

    updated = proposal.model_copy(update={"current_stage_checklist_status": status})
    return {
        "current_stage_checklist_status": status,
        **action_required_fields(updated, column),
    }
