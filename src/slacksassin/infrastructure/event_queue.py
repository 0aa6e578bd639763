"""Bounded in-memory event queue with deduplication."""

import asyncio

from slacksassin.domain.entities.event import Event

DEFAULT_MAX_SIZE = 100


class EventQueue:
    """Bounded event channel from the webhook server to the processing loop.

    Supports:
    - Backpressure: enqueue() waits while ``max_size`` events are queued
    - Deduplication based on identity_key (the newest event wins)
    - Processing state tracking
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE) -> None:
        """Initialize the event queue.

        Args:
            max_size: Maximum number of queued events.
        """
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=max_size)
        self._pending: dict[str, Event] = {}
        # Keyed by event.id so several events with one identity_key may run
        self._processing: dict[str, Event] = {}

    @property
    def max_size(self) -> int:
        return self._queue.maxsize

    @property
    def pending_count(self) -> int:
        """Return the number of pending events."""
        return len(self._pending)

    @property
    def processing_count(self) -> int:
        """Return the number of events being processed."""
        return len(self._processing)

    async def enqueue(self, event: Event) -> None:
        """Add an event to the queue, waiting while the queue is full.

        An event whose identity_key is already pending replaces the pending
        one without taking another queue slot.

        Args:
            event: The event to enqueue.
        """
        key = event.get_identity_key()
        if key in self._pending:
            self._pending[key] = event
            return
        await self._queue.put(event)
        self._pending[key] = event

    @property
    def is_full(self) -> bool:
        """Return True if a new identity_key would have to wait for a slot."""
        return self._queue.full()

    def try_enqueue(self, event: Event) -> bool:
        """Add an event without waiting.

        Returns:
            False if the queue is full and the event was not added.
        """
        key = event.get_identity_key()
        if key in self._pending:
            self._pending[key] = event
            return True
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        self._pending[key] = event
        return True

    async def dequeue(self) -> Event:
        """Get the next event from the queue.

        Returns:
            The most recent event for the next identity_key in line.
        """
        while True:
            queued = await self._queue.get()
            key = queued.get_identity_key()
            event = self._pending.pop(key, None)
            if event is None:
                # Already delivered through a newer duplicate
                continue
            self._processing[event.id] = event
            return event

    def mark_done(self, event: Event) -> None:
        """Mark an event as done processing.

        Args:
            event: The event that has been processed.
        """
        self._processing.pop(event.id, None)
