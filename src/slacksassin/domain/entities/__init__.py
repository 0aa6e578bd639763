"""Domain entities."""

from slacksassin.domain.entities.event import Event, EventType, NewMessageEvent
from slacksassin.domain.entities.message import Message, MessageType
from slacksassin.domain.entities.similarity import ConfidenceTier, SimilarityResult

__all__ = [
    "ConfidenceTier",
    "Event",
    "EventType",
    "Message",
    "MessageType",
    "NewMessageEvent",
    "SimilarityResult",
]
