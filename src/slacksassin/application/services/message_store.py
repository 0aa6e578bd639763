"""Message store: the single writer of message state."""

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from structlog.stdlib import BoundLogger

from slacksassin.domain.entities.message import MUTABLE_FIELDS, Message, utc_now
from slacksassin.domain.errors import InvalidTransitionError, MessageNotFoundError
from slacksassin.domain.lifecycle import MessageStatus, can_transition
from slacksassin.domain.repositories.message_repository import MessageRepository


class MessageStore:
    """Owns message persistence and the lifecycle state machine.

    All changes go through ``apply()``, which serializes mutations of the same
    record with a per-record lock, validates the status transition, maintains
    the lifecycle timestamps and persists before returning. Mutations of
    different records never wait on each other.

    Args:
        repository: Persistence backend.
        logger: Structured logger.
    """

    def __init__(self, repository: MessageRepository, logger: BoundLogger) -> None:
        self._repository = repository
        self._logger = logger
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def _locked(self, message_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(message_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[message_id] = lock
        async with lock:
            yield

    # Reads

    async def get(self, message_id: str) -> Message:
        """Return a message.

        Raises:
            MessageNotFoundError: If the id is unknown.
        """
        message = await self._repository.get_by_id(message_id)
        if message is None:
            raise MessageNotFoundError(message_id)
        return message

    async def list_messages(
        self, status: MessageStatus | None = None, limit: int | None = None
    ) -> list[Message]:
        return await self._repository.list_by_status(status, limit)

    async def list_templates(self, with_vector_only: bool = False) -> list[Message]:
        return await self._repository.list_templates(with_vector_only)

    async def count(self) -> int:
        return await self._repository.count()

    async def counts_by_status(self) -> dict[MessageStatus, int]:
        return await self._repository.count_by_status()

    # Writes

    async def create(self, message: Message) -> Message:
        """Persist a newly received message in ``pending`` state."""
        if message.status != MessageStatus.PENDING:
            raise ValueError("New messages must start in 'pending'")
        await self._repository.add(message)
        self._logger.debug("Message stored", message_id=message.id)
        return message

    async def apply(
        self,
        message_id: str,
        status: MessageStatus | None = None,
        *,
        retry: bool = False,
        **changes: Any,
    ) -> Message:
        """Apply a status transition and/or field changes atomically.

        Requesting the current status is a no-op for the status itself.

        Args:
            message_id: Target message.
            status: New status, or None to keep the current one.
            retry: Permit the explicit-retry edge (failed -> pending).
            **changes: New values for mutable fields.

        Returns:
            The persisted message.

        Raises:
            MessageNotFoundError: If the id is unknown.
            InvalidTransitionError: If the lifecycle forbids the transition.
            ValueError: If an immutable field is passed in ``changes``.
            StoreError: If persisting fails.
        """
        illegal = set(changes) - MUTABLE_FIELDS
        if illegal:
            raise ValueError(f"Immutable message fields: {', '.join(sorted(illegal))}")

        async with self._locked(message_id):
            message = await self.get(message_id)
            current = message.status

            if status is not None and not can_transition(current, status, retry=retry):
                raise InvalidTransitionError(message_id, current.value, status.value)

            for field, value in changes.items():
                setattr(message, field, value)

            if status is not None and status != current:
                self._enter(message, current, status)

            await self._repository.save(message)

        if status is not None and status != current:
            self._logger.info(
                "Message status changed",
                message_id=message_id,
                previous=current.value,
                status=status.value,
            )
        return message

    @staticmethod
    def _enter(message: Message, current: MessageStatus, target: MessageStatus) -> None:
        now = utc_now()
        message.status = target
        if current == MessageStatus.PROCESSING or (
            current == MessageStatus.PENDING and target == MessageStatus.SENT
        ):
            message.processed_at = now
        if target == MessageStatus.SENT:
            message.sent_at = now
        if target == MessageStatus.PENDING:
            message.error = None

    async def transition(
        self, message_id: str, status: MessageStatus, error: str | None = None
    ) -> Message:
        """Move a message to ``status``, recording ``error`` when given."""
        if error is not None:
            return await self.apply(message_id, status, error=error)
        return await self.apply(message_id, status)

    async def mark_failed(self, message_id: str, error: str) -> Message:
        return await self.apply(message_id, MessageStatus.FAILED, error=error)

    async def retry(self, message_id: str) -> Message:
        """Reset a failed message to ``pending`` and clear its error."""
        return await self.apply(message_id, MessageStatus.PENDING, retry=True)

    async def dismiss(self, message_id: str) -> Message:
        return await self.apply(message_id, MessageStatus.DISMISSED)

    async def edit_reply(self, message_id: str, reply: str) -> Message:
        """Store the operator's edited reply; an empty edit clears it."""
        return await self.apply(message_id, edited_reply=reply or None)

    async def set_template(
        self,
        message_id: str,
        is_template: bool,
        feature_vector: list[float] | None = None,
        feature_model: str | None = None,
    ) -> Message:
        """Toggle template eligibility, optionally caching the vector."""
        if feature_vector is None:
            return await self.apply(message_id, is_template=is_template)
        return await self.apply(
            message_id,
            is_template=is_template,
            feature_vector=feature_vector,
            feature_model=feature_model,
        )

    async def cache_feature_vector(
        self, message_id: str, feature_vector: list[float], feature_model: str
    ) -> Message:
        """Cache a vector unless one from the same extractor already exists."""
        async with self._locked(message_id):
            message = await self.get(message_id)
            if message.feature_vector is not None and message.feature_model == feature_model:
                return message
            message.feature_vector = feature_vector
            message.feature_model = feature_model
            await self._repository.save(message)
            return message

    async def record_auto_response(
        self,
        message_id: str,
        reply: str,
        source_id: str,
        note: str,
    ) -> Message:
        """Mark a message as answered by a template reply."""
        return await self.apply(
            message_id,
            MessageStatus.SENT,
            generated_reply=reply,
            auto_response_source_id=source_id,
            note=note,
        )

    async def dismiss_all_pending(self) -> int:
        pending = await self.list_messages(MessageStatus.PENDING)
        for message in pending:
            await self.dismiss(message.id)
        return len(pending)

    async def retry_all_failed(self) -> list[Message]:
        failed = await self.list_messages(MessageStatus.FAILED)
        return [await self.retry(message.id) for message in failed]

    async def recover_interrupted(self) -> int:
        """Fail messages left in ``processing`` by a previous run."""
        stuck = await self.list_messages(MessageStatus.PROCESSING)
        for message in stuck:
            await self.mark_failed(message.id, "Processing interrupted by shutdown")
        if stuck:
            self._logger.warning("Recovered interrupted messages", count=len(stuck))
        return len(stuck)

    async def delete(self, message_id: str) -> bool:
        async with self._locked(message_id):
            return await self._repository.delete([message_id]) > 0

    async def clear_processed(self) -> int:
        """Delete messages that are sent or dismissed."""
        done = await self.list_messages(MessageStatus.SENT)
        done += await self.list_messages(MessageStatus.DISMISSED)
        return await self._repository.delete([m.id for m in done])
