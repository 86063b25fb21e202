"""Board event delivery to webhook subscribers, signed with HMAC-SHA256."""

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone

import httpx

from bidboard.models.webhook import BoardEventEnvelope
from bidboard.services.id_generator import generate_id

from .webhook_config import WebhookSubscription, webhook_registry

logger = logging.getLogger(__name__)

SOURCE_SYSTEM = "bidboard-api"
MAX_ATTEMPTS = 3


def sign_payload(body: bytes, secret: str) -> str:
    """HMAC-SHA256 hex digest over the raw JSON body."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def build_envelope(event_type: str, payload: dict, source_system: str = SOURCE_SYSTEM) -> BoardEventEnvelope:
    """Unsigned envelope; the signature is added per subscriber."""
    return BoardEventEnvelope(
        event_type=event_type,
        event_id=generate_id("evt_"),
        occurred_at=datetime.now(timezone.utc),
        source_system=source_system,
        board_id=payload.get("board_id"),
        proposal_id=payload.get("proposal_id"),
        payload=payload,
    )


async def emit_event(event_type: str, payload: dict, source_system: str = SOURCE_SYSTEM) -> list[dict]:
    """Deliver an event to every matching subscriber.

    Returns one delivery result per subscriber: ``{"url", "status", "error"}``.
    Delivery failures never propagate to the caller.
    """
    subscribers = webhook_registry.get_subscribers(event_type)
    if not subscribers:
        return []

    envelope = build_envelope(event_type, payload, source_system)
    results = []
    for sub in subscribers:
        results.append(await _deliver(envelope, sub))
    return results


async def _deliver(envelope: BoardEventEnvelope, sub: WebhookSubscription) -> dict:
    body_dict = envelope.model_dump(mode="json")
    body_bytes = json.dumps(body_dict, separators=(",", ":")).encode("utf-8")
    signature = sign_payload(body_bytes, sub.secret)
    body_dict["signature"] = signature
    signed_body = json.dumps(body_dict, separators=(",", ":")).encode("utf-8")

    headers = {
        "Content-Type": "application/json",
        "X-BidBoard-Signature": signature,
        "X-BidBoard-Event": envelope.event_type,
    }

    for attempt in range(MAX_ATTEMPTS):
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                resp = await client.post(sub.url, content=signed_body, headers=headers)
        except httpx.HTTPError as exc:
            if attempt < MAX_ATTEMPTS - 1:
                continue
            logger.warning("Webhook delivery failed to %s: %s", sub.url, exc)
            return {"url": sub.url, "status": None, "error": str(exc)}
        if resp.status_code < 300:
            return {"url": sub.url, "status": resp.status_code, "error": None}
        if resp.status_code >= 500 and attempt < MAX_ATTEMPTS - 1:
            continue
        return {"url": sub.url, "status": resp.status_code, "error": f"HTTP {resp.status_code}"}

    return {"url": sub.url, "status": None, "error": "max retries exceeded"}
