"""Listing event model — one record per lifecycle transition.

The event log is append-only.  It outlives the listing it describes, so
the history of an expired or deleted listing stays readable.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class ListingEvent(BaseModel):
    """A single entry in the listing transition log."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    listing_id: str
    transition: str  # "from_state->to_state", e.g. "unsold->sold"
    actor: str  # requester id, or "expiry" for automatic removal
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
