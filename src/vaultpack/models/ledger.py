"""Pydantic models for export ledger events."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

EventType = Literal[
    "EXPORT_PLANNED",
    "FILE_FILTERED",
    "EXPORT_WRITTEN",
]


class LedgerEvent(BaseModel):
    """Append-only ledger event record.

    Written as JSONL to <vault>/.vaultpack/ledger.jsonl.
    Never mutate or delete; only append.
    """

    event_id: str = Field(description="Unique event identifier (uuid4)")
    run_id: str = Field(description="Export run identifier (uuid4)")
    ts: datetime = Field(description="Event timestamp (ISO8601 UTC)")
    event_type: EventType = Field(description="Event type")
    root_path: str | None = Field(default=None, description="Vault path of the exported root note")
    payload: dict = Field(default_factory=dict, description="Event-specific data")

    model_config = {"frozen": True}
