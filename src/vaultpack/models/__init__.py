"""Pydantic models for vaultpack."""

from .ledger import EventType, LedgerEvent

__all__ = [
    "EventType",
    "LedgerEvent",
]
