"""Tests for EventQueue."""

import asyncio

import pytest

from slacksassin.domain.entities.event import NewMessageEvent
from slacksassin.infrastructure.event_queue import EventQueue


class TestEventQueue:
    """Tests for EventQueue class."""

    async def test_basic_enqueue_dequeue(self) -> None:
        queue = EventQueue()
        event = NewMessageEvent.for_message("m1")

        await queue.enqueue(event)
        result = await queue.dequeue()

        assert result.id == event.id

    async def test_fifo_order(self) -> None:
        queue = EventQueue()
        events = [NewMessageEvent.for_message(f"m{i}") for i in range(3)]
        for event in events:
            await queue.enqueue(event)

        results = [await queue.dequeue() for _ in events]

        assert [e.id for e in results] == [e.id for e in events]

    async def test_duplicate_message_event_collapsed(self) -> None:
        """Repeated announcements of one message are delivered once (newest)."""
        queue = EventQueue()
        event1 = NewMessageEvent.for_message("m1")
        event2 = NewMessageEvent.for_message("m1")

        await queue.enqueue(event1)
        await queue.enqueue(event2)

        assert queue.pending_count == 1
        result = await queue.dequeue()
        assert result.id == event2.id

        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.1):
                await queue.dequeue()

    async def test_duplicate_does_not_take_a_slot(self) -> None:
        queue = EventQueue(max_size=1)

        await queue.enqueue(NewMessageEvent.for_message("m1"))
        async with asyncio.timeout(0.1):
            await queue.enqueue(NewMessageEvent.for_message("m1"))

        assert queue.pending_count == 1

    async def test_full_queue_applies_backpressure(self) -> None:
        """enqueue() waits while the queue is full."""
        queue = EventQueue(max_size=1)
        await queue.enqueue(NewMessageEvent.for_message("m1"))

        blocked = asyncio.create_task(queue.enqueue(NewMessageEvent.for_message("m2")))
        await asyncio.sleep(0.05)
        assert not blocked.done()

        first = await queue.dequeue()
        async with asyncio.timeout(1.0):
            await blocked
        second = await queue.dequeue()

        assert first.message_id == "m1"  # type: ignore[attr-defined]
        assert second.message_id == "m2"  # type: ignore[attr-defined]

    async def test_max_size(self) -> None:
        assert EventQueue(max_size=7).max_size == 7
        assert EventQueue().max_size == 100

    async def test_processing_tracking(self) -> None:
        queue = EventQueue()
        await queue.enqueue(NewMessageEvent.for_message("m1"))

        event = await queue.dequeue()
        assert queue.processing_count == 1
        assert queue.pending_count == 0

        queue.mark_done(event)
        assert queue.processing_count == 0

    async def test_same_message_can_be_requeued_while_processing(self) -> None:
        queue = EventQueue()
        await queue.enqueue(NewMessageEvent.for_message("m1"))
        first = await queue.dequeue()

        await queue.enqueue(NewMessageEvent.for_message("m1"))
        second = await queue.dequeue()

        assert first.id != second.id
        assert queue.processing_count == 2

    async def test_mark_done_unknown_event_is_ignored(self) -> None:
        queue = EventQueue()

        queue.mark_done(NewMessageEvent.for_message("m1"))

        assert queue.processing_count == 0


class TestTryEnqueue:
    """Tests for the non-blocking enqueue."""

    async def test_adds_when_space(self) -> None:
        queue = EventQueue(max_size=1)

        assert queue.try_enqueue(NewMessageEvent.for_message("m1")) is True
        assert queue.pending_count == 1
        assert queue.is_full

    async def test_rejects_when_full(self) -> None:
        queue = EventQueue(max_size=1)
        queue.try_enqueue(NewMessageEvent.for_message("m1"))

        assert queue.try_enqueue(NewMessageEvent.for_message("m2")) is False
        assert queue.pending_count == 1
        event = await queue.dequeue()
        assert event.message_id == "m1"  # type: ignore[attr-defined]

    async def test_duplicate_accepted_when_full(self) -> None:
        queue = EventQueue(max_size=1)
        queue.try_enqueue(NewMessageEvent.for_message("m1"))
        newer = NewMessageEvent.for_message("m1")

        assert queue.try_enqueue(newer) is True
        assert (await queue.dequeue()).id == newer.id

    async def test_not_full_after_dequeue(self) -> None:
        queue = EventQueue(max_size=1)
        queue.try_enqueue(NewMessageEvent.for_message("m1"))

        await queue.dequeue()

        assert not queue.is_full
