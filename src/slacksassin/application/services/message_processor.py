"""Per-message decision between auto-response and reply generation."""

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum

from structlog.stdlib import BoundLogger

from slacksassin.application.services.message_store import MessageStore
from slacksassin.application.services.outbound_relay import OutboundRelay
from slacksassin.application.services.response_orchestrator import (
    ResponseOrchestrator,
)
from slacksassin.application.services.similarity_engine import SimilarityEngine
from slacksassin.domain.entities.message import Message
from slacksassin.domain.entities.similarity import SimilarityResult
from slacksassin.domain.errors import (
    DeliveryError,
    GenerationError,
    InvalidTransitionError,
)
from slacksassin.domain.lifecycle import MessageStatus

AUTO_RESPONSE_NOTE = (
    "Auto-responded using template from similar message (confidence: {confidence})"
)


class ProcessingAction(str, Enum):
    """What the processor did with a message."""

    AUTO_RESPONDED = "auto_responded"
    GENERATED = "generated"
    HELD = "held"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ProcessingOutcome:
    """Result of processing one message."""

    message_id: str
    action: ProcessingAction
    similar: list[SimilarityResult] = field(default_factory=list)
    reply: str | None = None
    error: str | None = None


class MessageProcessor:
    """Decides, once per pending message, how it gets answered.

    A template whose confidence clears the auto-response threshold is sent
    straight through the relay (``pending -> sent``). Otherwise the reply is
    generated when auto-generation is enabled, or the message is held for
    manual handling. Decisions for one message are serialized and only taken
    while it is still ``pending``, so a message is never both auto-responded
    and generated.

    Args:
        store: Message store.
        similarity: Similarity engine.
        orchestrator: Response orchestrator.
        relay: Outbound relay.
        logger: Structured logger.
        auto_generate: Generate replies for messages without a template match.
    """

    def __init__(
        self,
        store: MessageStore,
        similarity: SimilarityEngine,
        orchestrator: ResponseOrchestrator,
        relay: OutboundRelay,
        logger: BoundLogger,
        auto_generate: bool = True,
    ) -> None:
        self._store = store
        self._similarity = similarity
        self._orchestrator = orchestrator
        self._relay = relay
        self._logger = logger
        self._auto_generate = auto_generate
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def _decision(self, message_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(message_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[message_id] = lock
        async with lock:
            yield

    async def process(self, message_id: str) -> ProcessingOutcome:
        """Answer a pending message.

        Returns:
            The outcome; messages no longer ``pending`` are skipped.

        Raises:
            MessageNotFoundError: If the id is unknown.
            StoreError: If the store cannot be read or written.
        """
        async with self._decision(message_id):
            message = await self._store.get(message_id)
            if message.status != MessageStatus.PENDING:
                self._logger.info(
                    "Skipping message that is not pending",
                    message_id=message_id,
                    status=message.status.value,
                )
                return ProcessingOutcome(message_id, ProcessingAction.SKIPPED)

            similar = await self._similarity.find_similar(message)
            best = self._auto_response_match(similar)
            if best is not None:
                return await self._auto_respond(message, best, similar)

            if not self._auto_generate:
                self._logger.info("Holding message for review", message_id=message_id)
                return ProcessingOutcome(message_id, ProcessingAction.HELD, similar)

            return await self._generate(message_id, similar)

    def _auto_response_match(
        self, similar: list[SimilarityResult]
    ) -> SimilarityResult | None:
        best = self._similarity.pick_auto_response(similar)
        if best is None:
            return None
        if not best.template.reply_text.strip():
            self._logger.info(
                "Best template has no reply, falling back to generation",
                template_id=best.template.id,
            )
            return None
        if not self._relay.is_configured:
            self._logger.warning(
                "Relay not configured, falling back to generation",
                template_id=best.template.id,
            )
            return None
        return best

    async def _auto_respond(
        self,
        message: Message,
        match: SimilarityResult,
        similar: list[SimilarityResult],
    ) -> ProcessingOutcome:
        reply = match.template.reply_text
        self._logger.info(
            "Auto-responding from template",
            message_id=message.id,
            template_id=match.template.id,
            confidence=match.formatted_confidence,
        )
        try:
            await self._relay.deliver(message, reply)
        except DeliveryError as e:
            error = f"Auto-response failed: {e}"
            await self._store.mark_failed(message.id, error)
            return ProcessingOutcome(
                message.id, ProcessingAction.FAILED, similar, error=error
            )

        note = AUTO_RESPONSE_NOTE.format(confidence=match.formatted_confidence)
        try:
            await self._store.record_auto_response(
                message.id, reply=reply, source_id=match.template.id, note=note
            )
        except InvalidTransitionError as e:
            # The reply is already out; keep the new status but record what was sent
            self._logger.warning(
                "Auto-response delivered after message status changed",
                message_id=message.id,
                error=str(e),
            )
            await self._store.apply(
                message.id,
                generated_reply=reply,
                auto_response_source_id=match.template.id,
                note=note,
            )
        return ProcessingOutcome(
            message.id, ProcessingAction.AUTO_RESPONDED, similar, reply=reply
        )

    async def _generate(
        self, message_id: str, similar: list[SimilarityResult]
    ) -> ProcessingOutcome:
        try:
            reply = await self._orchestrator.generate(message_id)
        except GenerationError as e:
            return ProcessingOutcome(
                message_id, ProcessingAction.FAILED, similar, error=str(e)
            )
        except InvalidTransitionError:
            return ProcessingOutcome(message_id, ProcessingAction.SKIPPED, similar)
        return ProcessingOutcome(
            message_id, ProcessingAction.GENERATED, similar, reply=reply
        )
