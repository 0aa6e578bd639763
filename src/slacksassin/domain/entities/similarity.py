"""Similarity results between a message and a template message."""

from dataclasses import dataclass
from enum import Enum

from slacksassin.domain.entities.message import Message


class ConfidenceTier(str, Enum):
    """Discrete bucket of a similarity confidence."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


@dataclass(frozen=True)
class SimilarityResult:
    """A template message scored against a target message."""

    target_id: str
    template: Message
    confidence: float
    tier: ConfidenceTier

    @property
    def formatted_confidence(self) -> str:
        return f"{self.confidence:.1f}%"
