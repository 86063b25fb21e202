"""Board event envelope delivered to webhook subscribers.

``board_id`` and ``proposal_id`` are lifted out of the payload so that a
receiver can route an event without parsing its body.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class BoardEventEnvelope(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: str = Field("1.0", pattern=r"^\d+\.\d+$")
    event_type: str = Field(..., pattern=r"^[a-z_]+\.[a-z_]+$")
    event_id: str
    occurred_at: datetime
    source_system: str
    board_id: str | None = None
    proposal_id: str | None = None
    # Filled in per subscriber at delivery time
    signature: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
