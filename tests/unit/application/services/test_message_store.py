"""Tests for MessageStore."""

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import structlog

from slacksassin.application.services.message_store import MessageStore
from slacksassin.domain.entities.message import Message
from slacksassin.domain.errors import InvalidTransitionError, MessageNotFoundError
from slacksassin.domain.lifecycle import MessageStatus
from slacksassin.infrastructure.persistence.database import Database
from slacksassin.infrastructure.persistence.message_repository import (
    SqliteMessageRepository,
)


@pytest.fixture
async def database(tmp_path: Path) -> AsyncIterator[Database]:
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def store(database: Database) -> MessageStore:
    return MessageStore(SqliteMessageRepository(database), structlog.get_logger())


def create_message(text: str = "Can you help with the API docs?") -> Message:
    return Message(
        text=text,
        channel_id="C1",
        channel_name="general",
        user_id="U1",
        user_name="Test User",
        source_ts="1716920000.000100",
    )


async def stored(store: MessageStore, text: str = "Can you help?") -> Message:
    return await store.create(create_message(text))


class TestCreateAndGet:
    async def test_create_persists_pending(self, store: MessageStore) -> None:
        message = await stored(store)

        loaded = await store.get(message.id)

        assert loaded.status == MessageStatus.PENDING
        assert await store.count() == 1

    async def test_create_rejects_non_pending(self, store: MessageStore) -> None:
        message = create_message()
        message.status = MessageStatus.SENT

        with pytest.raises(ValueError):
            await store.create(message)
        assert await store.count() == 0

    async def test_get_missing_raises(self, store: MessageStore) -> None:
        with pytest.raises(MessageNotFoundError):
            await store.get("missing")


class TestApply:
    async def test_processing_to_completed_sets_processed_at(
        self, store: MessageStore
    ) -> None:
        message = await stored(store)

        await store.transition(message.id, MessageStatus.PROCESSING)
        done = await store.apply(
            message.id, MessageStatus.COMPLETED, generated_reply="Sure"
        )

        assert done.status == MessageStatus.COMPLETED
        assert done.generated_reply == "Sure"
        assert done.processed_at is not None
        assert done.sent_at is None

    async def test_invalid_transition_leaves_record_untouched(
        self, store: MessageStore
    ) -> None:
        message = await stored(store)

        with pytest.raises(InvalidTransitionError):
            await store.apply(message.id, MessageStatus.COMPLETED, generated_reply="x")

        loaded = await store.get(message.id)
        assert loaded.status == MessageStatus.PENDING
        assert loaded.generated_reply is None

    async def test_same_status_is_noop(self, store: MessageStore) -> None:
        message = await stored(store)

        again = await store.transition(message.id, MessageStatus.PENDING)

        assert again.status == MessageStatus.PENDING

    async def test_immutable_field_rejected(self, store: MessageStore) -> None:
        message = await stored(store)

        with pytest.raises(ValueError):
            await store.apply(message.id, text="rewritten")

    async def test_terminal_status_is_final(self, store: MessageStore) -> None:
        message = await stored(store)
        await store.dismiss(message.id)

        for status in (MessageStatus.PENDING, MessageStatus.PROCESSING, MessageStatus.SENT):
            with pytest.raises(InvalidTransitionError):
                await store.transition(message.id, status)

    async def test_sent_sets_sent_at(self, store: MessageStore) -> None:
        message = await stored(store)
        await store.transition(message.id, MessageStatus.PROCESSING)
        await store.apply(message.id, MessageStatus.COMPLETED, generated_reply="Sure")

        sent = await store.transition(message.id, MessageStatus.SENT)

        assert sent.sent_at is not None

    async def test_concurrent_updates_of_one_record_are_serialized(
        self, store: MessageStore
    ) -> None:
        """Only one of two racing processing claims succeeds."""
        message = await stored(store)

        results = await asyncio.gather(
            store.transition(message.id, MessageStatus.PROCESSING),
            store.transition(message.id, MessageStatus.DISMISSED),
            return_exceptions=True,
        )

        final = await store.get(message.id)
        assert final.status == MessageStatus.DISMISSED
        assert not any(isinstance(r, Exception) for r in results)


class TestRetryAndFailures:
    async def test_retry_clears_error(self, store: MessageStore) -> None:
        message = await stored(store)
        await store.transition(message.id, MessageStatus.PROCESSING)
        await store.mark_failed(message.id, "Generation timed out after 30 seconds")

        retried = await store.retry(message.id)

        assert retried.status == MessageStatus.PENDING
        assert retried.error is None

    async def test_failed_to_pending_requires_retry(self, store: MessageStore) -> None:
        message = await stored(store)
        await store.mark_failed(message.id, "boom")

        with pytest.raises(InvalidTransitionError):
            await store.transition(message.id, MessageStatus.PENDING)

    async def test_retry_all_failed(self, store: MessageStore) -> None:
        first = await stored(store)
        second = await stored(store)
        await store.mark_failed(first.id, "boom")
        await store.mark_failed(second.id, "boom")

        retried = await store.retry_all_failed()

        assert {m.id for m in retried} == {first.id, second.id}
        assert (await store.counts_by_status())[MessageStatus.PENDING] == 2

    async def test_recover_interrupted(self, store: MessageStore) -> None:
        stuck = await stored(store)
        idle = await stored(store)
        await store.transition(stuck.id, MessageStatus.PROCESSING)

        recovered = await store.recover_interrupted()

        assert recovered == 1
        failed = await store.get(stuck.id)
        assert failed.status == MessageStatus.FAILED
        assert failed.error == "Processing interrupted by shutdown"
        assert (await store.get(idle.id)).status == MessageStatus.PENDING


class TestReplyAndTemplates:
    async def test_edit_reply(self, store: MessageStore) -> None:
        message = await stored(store)

        edited = await store.edit_reply(message.id, "Try the #docs channel.")
        cleared = await store.edit_reply(message.id, "")

        assert edited.edited_reply == "Try the #docs channel."
        assert cleared.edited_reply is None

    async def test_set_template_with_vector(self, store: MessageStore) -> None:
        message = await stored(store)

        await store.set_template(message.id, True, [1.0, 0.0], "lexical")

        templates = await store.list_templates(with_vector_only=True)
        assert [t.id for t in templates] == [message.id]
        assert templates[0].feature_vector == [1.0, 0.0]

    async def test_cache_feature_vector_written_once_per_model(
        self, store: MessageStore
    ) -> None:
        message = await stored(store)

        await store.cache_feature_vector(message.id, [1.0], "lexical")
        again = await store.cache_feature_vector(message.id, [2.0], "lexical")
        other = await store.cache_feature_vector(message.id, [3.0], "embedding")

        assert again.feature_vector == [1.0]
        assert other.feature_vector == [3.0]
        assert other.feature_model == "embedding"

    async def test_record_auto_response(self, store: MessageStore) -> None:
        template = await stored(store, "How do I reset my password?")
        message = await stored(store, "How can I reset my password?")

        sent = await store.record_auto_response(
            message.id,
            reply="Use the reset link.",
            source_id=template.id,
            note="Auto-responded",
        )

        assert sent.status == MessageStatus.SENT
        assert sent.generated_reply == "Use the reset link."
        assert sent.auto_response_source_id == template.id
        assert sent.note == "Auto-responded"
        assert sent.processed_at is not None
        assert sent.sent_at is not None


class TestBulkOperations:
    async def test_dismiss_all_pending(self, store: MessageStore) -> None:
        await stored(store)
        await stored(store)
        other = await stored(store)
        await store.transition(other.id, MessageStatus.PROCESSING)

        dismissed = await store.dismiss_all_pending()

        counts = await store.counts_by_status()
        assert dismissed == 2
        assert counts[MessageStatus.DISMISSED] == 2
        assert counts[MessageStatus.PROCESSING] == 1

    async def test_clear_processed(self, store: MessageStore) -> None:
        dismissed = await stored(store)
        pending = await stored(store)
        await store.dismiss(dismissed.id)

        removed = await store.clear_processed()

        assert removed == 1
        assert [m.id for m in await store.list_messages()] == [pending.id]

    async def test_delete(self, store: MessageStore) -> None:
        message = await stored(store)

        assert await store.delete(message.id) is True
        assert await store.delete(message.id) is False
