"""Event entities passed from the webhook server to the processing loop."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

import ulid
from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Event type enumeration."""

    NEW_MESSAGE = "new_message"


class Event(BaseModel):
    """Base class for all events."""

    id: str = Field(default_factory=lambda: str(ulid.new()))
    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: str
    payload: dict[str, Any] = Field(default_factory=dict)

    def get_identity_key(self) -> str:
        """Return the identity key for deduplication."""
        return self.id


class NewMessageEvent(Event):
    """A message was persisted and waits for a processing decision."""

    type: Literal[EventType.NEW_MESSAGE] = EventType.NEW_MESSAGE
    source: str = "webhook"

    @classmethod
    def for_message(cls, message_id: str, source: str = "webhook") -> "NewMessageEvent":
        """Create the event announcing ``message_id``."""
        return cls(source=source, payload={"message_id": message_id})

    @property
    def message_id(self) -> str:
        """Return the id of the announced message."""
        return str(self.payload["message_id"])

    def get_identity_key(self) -> str:
        """Deduplicate repeated announcements of the same message."""
        return f"message:{self.message_id}"
