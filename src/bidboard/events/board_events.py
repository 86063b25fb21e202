"""Board event emitter: webhooks plus a notification record per event."""

import logging

from sqlalchemy.exc import SQLAlchemyError

from bidboard.db.models.notification import NotificationRow
from bidboard.events.webhook_emitter import emit_event
from bidboard.services.id_generator import generate_id

logger = logging.getLogger(__name__)

MOVE_COMPLETED = "move.completed"
MOVE_APPROVAL_REQUESTED = "move.approval_requested"
MOVE_APPROVAL_DECIDED = "move.approval_decided"
COLUMN_WIP_EXCEEDED = "column.wip_exceeded"
CONTENT_PROMOTION_PROMPT = "proposal.content_promotion_prompt"

EVENT_SEVERITY = {
    MOVE_COMPLETED: "info",
    MOVE_APPROVAL_REQUESTED: "info",
    MOVE_APPROVAL_DECIDED: "info",
    COLUMN_WIP_EXCEEDED: "warning",
    CONTENT_PROMOTION_PROMPT: "info",
}

EVENT_TITLES = {
    MOVE_COMPLETED: "Proposal moved",
    MOVE_APPROVAL_REQUESTED: "Move awaiting approval",
    MOVE_APPROVAL_DECIDED: "Move approval decided",
    COLUMN_WIP_EXCEEDED: "Column over WIP limit",
    CONTENT_PROMOTION_PROMPT: "Reuse winning content",
}


async def emit_board_event(event_type: str, payload: dict, db_session=None) -> dict:
    """Send a board event to webhook subscribers and record a notification.

    ``payload`` should carry ``board_id`` and, where relevant, ``proposal_id``.
    The notification is flushed, not committed. Callers commit the
    triggering change first, so a failed notification write only rolls back
    itself and never undoes the action.
    """
    event_id = generate_id("bevt_")
    webhook_results = await emit_event(event_type, {**payload, "event_id": event_id})

    result = {
        "event_id": event_id,
        "event_type": event_type,
        "webhook_deliveries": len(webhook_results),
        "notification_id": None,
    }

    if db_session is not None:
        notification_id = generate_id("notif_")
        try:
            db_session.add(
                NotificationRow(
                    notification_id=notification_id,
                    recipient="all",
                    board_id=payload.get("board_id"),
                    proposal_id=payload.get("proposal_id"),
                    event_type=event_type,
                    title=EVENT_TITLES.get(event_type, event_type),
                    body=_build_notification_body(event_type, payload),
                    severity=EVENT_SEVERITY.get(event_type, "info"),
                    read=False,
                    link=_build_notification_link(event_type, payload),
                    extra_data=payload,
                )
            )
            await db_session.flush()
            result["notification_id"] = notification_id
        except SQLAlchemyError as exc:
            await db_session.rollback()
            logger.warning("Failed to create notification for %s: %s", event_type, exc)

    return result


def _build_notification_body(event_type: str, payload: dict) -> str:
    proposal_id = payload.get("proposal_id", "unknown")
    if event_type == MOVE_COMPLETED:
        src = payload.get("source_column_id", "?")
        dest = payload.get("dest_column_id", "?")
        return f"Proposal {proposal_id} moved from {src} to {dest}"
    elif event_type == MOVE_APPROVAL_REQUESTED:
        dest = payload.get("dest_column_id", "?")
        return f"Move of proposal {proposal_id} to {dest} needs approval"
    elif event_type == MOVE_APPROVAL_DECIDED:
        decision = payload.get("decision", "unknown")
        return f"Move of proposal {proposal_id}: {decision}"
    elif event_type == COLUMN_WIP_EXCEEDED:
        return payload.get("advisory") or f"Column {payload.get('column_id', '?')} is over its WIP limit"
    elif event_type == CONTENT_PROMOTION_PROMPT:
        return f"Proposal {proposal_id} was won; consider promoting its content to the library"
    return f"Board event: {event_type}"


def _build_notification_link(event_type: str, payload: dict) -> str | None:
    if event_type in (MOVE_APPROVAL_REQUESTED, MOVE_APPROVAL_DECIDED):
        approval_id = payload.get("approval_id")
        if approval_id:
            return f"/move-approvals/{approval_id}"
    board_id = payload.get("board_id")
    if board_id:
        return f"/boards/{board_id}"
    return None
