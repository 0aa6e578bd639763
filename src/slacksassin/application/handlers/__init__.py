"""Event handler module."""

from typing import Protocol, runtime_checkable

from slacksassin.domain.entities.event import Event


@runtime_checkable
class EventHandler(Protocol):
    """Protocol for handlers consuming events from the queue."""

    async def handle(self, event: Event) -> None:
        """Handle one event.

        Args:
            event: The dequeued event.
        """
        ...
