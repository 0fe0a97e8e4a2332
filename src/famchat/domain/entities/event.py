"""Event entities flowing through the event queue and realtime hub."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

import ulid
from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Event type enumeration."""

    CHANGE = "change"
    RECONCILE = "reconcile"


class ChangeAction(str, Enum):
    """Row change kinds emitted by the store."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class Event(BaseModel):
    """Base class for all events."""

    id: str = Field(default_factory=lambda: str(ulid.new()))
    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Event":
        """Build an event from an HTTP request payload."""
        return cls(payload=payload)

    def get_identity_key(self) -> str:
        """Return the identity key for deduplication."""
        return self.id


class ChangeEvent(Event):
    """Row change captured from the store.

    Redelivery of the same change shares an identity key, so the event queue
    keeps only the newest copy.
    """

    type: Literal[EventType.CHANGE] = EventType.CHANGE
    source: str = "store"
    table: str
    action: ChangeAction
    record: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ChangeEvent":
        """Build a change event from a webhook payload.

        Raises:
            ValueError: If ``table``, ``action`` or ``record`` is missing.
        """
        missing = [key for key in ("table", "action", "record") if key not in payload]
        if missing:
            raise ValueError(f"Missing change fields: {', '.join(missing)}")
        return cls(
            source="webhook",
            table=payload["table"],
            action=ChangeAction(str(payload["action"]).upper()),
            record=dict(payload["record"]),
            payload=payload,
        )

    def get_identity_key(self) -> str:
        """Return table, action and row id."""
        return f"change:{self.table}:{self.action.value}:{self.record.get('id')}"


class ReconcileEvent(Event):
    """Request to run the group thread maintenance routine."""

    type: Literal[EventType.RECONCILE] = EventType.RECONCILE
    source: Literal["api"] = "api"

    def get_identity_key(self) -> str:
        """Return fixed identity key so pending requests collapse."""
        return "reconcile"
