"""Tests for OutboundRelay."""

from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest
import structlog
from aiohttp import web

from slacksassin.application.services.message_store import MessageStore
from slacksassin.application.services.outbound_relay import (
    TEST_RESPONSE_TEXT,
    OutboundRelay,
)
from slacksassin.config.models import RelayConfig
from slacksassin.domain.entities.message import Message
from slacksassin.domain.errors import (
    DeliveryFailedError,
    InvalidTransitionError,
    RelayNotConfiguredError,
)
from slacksassin.domain.lifecycle import MessageStatus
from slacksassin.infrastructure.persistence.database import Database
from slacksassin.infrastructure.persistence.message_repository import (
    SqliteMessageRepository,
)
from slacksassin.infrastructure.relay.client import RelayClient


@pytest.fixture
async def store(tmp_path: Path) -> AsyncIterator[MessageStore]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await database.initialize()
    yield MessageStore(SqliteMessageRepository(database), structlog.get_logger())
    await database.close()


class Recorder:
    """Fake relay endpoint."""

    def __init__(self, status: int = 200) -> None:
        self.status = status
        self.requests: list[dict[str, Any]] = []
        self.on_request: Callable[[dict[str, Any]], Awaitable[object]] | None = None

    async def handler(self, request: web.Request) -> web.Response:
        payload = await request.json()
        self.requests.append(payload)
        if self.on_request is not None:
            await self.on_request(payload)
        return web.Response(status=self.status)


@pytest.fixture
async def make_relay(aiohttp_server, store: MessageStore):  # type: ignore[no-untyped-def]
    clients: list[RelayClient] = []

    async def factory(status: int = 200) -> tuple[OutboundRelay, Recorder]:
        recorder = Recorder(status)
        app = web.Application()
        app.router.add_post("/hook", recorder.handler)
        server = await aiohttp_server(app)
        client = RelayClient(
            RelayConfig(url=str(server.make_url("/hook"))), structlog.get_logger()
        )
        clients.append(client)
        return OutboundRelay(store, client, structlog.get_logger()), recorder

    yield factory
    for client in clients:
        await client.close()


async def completed_message(store: MessageStore, reply: str = "Generated reply") -> Message:
    message = await store.create(
        Message(
            text="Where are the docs?",
            channel_id="C123",
            user_id="U456",
            thread_id="1716900000.000100",
            source_ts="1716900000.000200",
        )
    )
    await store.transition(message.id, MessageStatus.PROCESSING)
    return await store.apply(message.id, MessageStatus.COMPLETED, generated_reply=reply)


class TestBuildPayload:
    """Tests for OutboundRelay.build_payload."""

    def test_maps_message_fields(self) -> None:
        message = Message(
            text="Where are the docs?",
            channel_id="C123",
            user_id="U456",
            thread_id="1716900000.000100",
            source_ts="1.0",
        )

        payload = OutboundRelay.build_payload(message, "Reply")

        assert payload.message_id == message.id
        assert payload.response_text == "Reply"
        assert payload.channel == "C123"
        assert payload.thread_id == "1716900000.000100"
        assert payload.original_message_text == "Where are the docs?"
        assert payload.user_id_mention == "U456"


class TestSend:
    """Tests for OutboundRelay.send."""

    async def test_sends_generated_reply(self, store: MessageStore, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, recorder = await make_relay()
        message = await completed_message(store)

        sent = await relay.send(message.id)

        assert sent.status == MessageStatus.SENT
        assert sent.sent_at is not None
        assert recorder.requests[0]["response_text"] == "Generated reply"
        assert recorder.requests[0]["message_id"] == message.id

    async def test_prefers_edited_reply(self, store: MessageStore, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, recorder = await make_relay()
        message = await completed_message(store)
        await store.edit_reply(message.id, "Edited reply")

        await relay.send(message.id)

        assert recorder.requests[0]["response_text"] == "Edited reply"

    async def test_explicit_text(self, store: MessageStore, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, recorder = await make_relay()
        message = await completed_message(store)

        await relay.send(message.id, "Custom")

        assert recorder.requests[0]["response_text"] == "Custom"

    async def test_already_sent_is_noop(self, store: MessageStore, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, recorder = await make_relay()
        message = await completed_message(store)
        await relay.send(message.id)

        again = await relay.send(message.id)

        assert again.status == MessageStatus.SENT
        assert len(recorder.requests) == 1

    async def test_relay_error_keeps_status(self, store: MessageStore, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, _ = await make_relay(status=500)
        message = await completed_message(store)

        with pytest.raises(DeliveryFailedError):
            await relay.send(message.id)

        assert (await store.get(message.id)).status == MessageStatus.COMPLETED

    async def test_empty_reply_is_rejected(self, store: MessageStore, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, recorder = await make_relay()
        message = await completed_message(store)

        with pytest.raises(DeliveryFailedError):
            await relay.send(message.id, "   ")

        assert recorder.requests == []

    async def test_dismissed_cannot_be_sent(self, store: MessageStore, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, recorder = await make_relay()
        message = await completed_message(store)
        await store.dismiss(message.id)

        with pytest.raises(InvalidTransitionError):
            await relay.send(message.id)

        assert recorder.requests == []

    async def test_dismissed_during_delivery(self, store: MessageStore, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, recorder = await make_relay()
        message = await completed_message(store)

        async def dismiss(payload: dict[str, Any]) -> object:
            return await store.dismiss(payload["message_id"])

        recorder.on_request = dismiss

        result = await relay.send(message.id)

        assert result.status == MessageStatus.DISMISSED
        assert result.note == "Reply delivered after the message was dismissed"
        assert result.sent_at is None
        assert len(recorder.requests) == 1

    async def test_not_configured(self, store: MessageStore) -> None:
        client = RelayClient(RelayConfig(), structlog.get_logger())
        relay = OutboundRelay(store, client, structlog.get_logger())
        message = await completed_message(store)

        assert relay.is_configured is False
        assert relay.url is None
        with pytest.raises(RelayNotConfiguredError):
            await relay.send(message.id)


class TestSendAndMarkFailed:
    """Tests for OutboundRelay.send_and_mark_failed."""

    async def test_failure_is_recorded(self, store: MessageStore, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, _ = await make_relay(status=502)
        message = await completed_message(store)

        with pytest.raises(DeliveryFailedError):
            await relay.send_and_mark_failed(message.id)

        failed = await store.get(message.id)
        assert failed.status == MessageStatus.FAILED
        assert failed.error == "Failed to deliver reply: relay returned HTTP 502"

    async def test_success(self, store: MessageStore, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, _ = await make_relay()
        message = await completed_message(store)

        sent = await relay.send_and_mark_failed(message.id)

        assert sent.status == MessageStatus.SENT


class TestSendTest:
    """Tests for OutboundRelay.send_test."""

    async def test_success(self, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, recorder = await make_relay()

        assert await relay.send_test() is True
        assert recorder.requests[0]["response_text"] == TEST_RESPONSE_TEXT
        assert recorder.requests[0]["message_id"].startswith("test-")

    async def test_failure(self, make_relay) -> None:  # type: ignore[no-untyped-def]
        relay, _ = await make_relay(status=500)

        assert await relay.send_test() is False

    async def test_not_configured(self, store: MessageStore) -> None:
        relay = OutboundRelay(
            store, RelayClient(RelayConfig(), structlog.get_logger()), structlog.get_logger()
        )

        assert await relay.send_test() is False
