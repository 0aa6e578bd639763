"""SQLite implementation of MessageRepository."""

from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import select

from slacksassin.domain.entities.message import MUTABLE_FIELDS, Message
from slacksassin.domain.errors import StoreError
from slacksassin.domain.lifecycle import MessageStatus
from slacksassin.infrastructure.persistence.database import Database

# Columns written by save(): everything that may change after creation.
_SAVED_FIELDS = tuple(sorted(MUTABLE_FIELDS)) + ("status", "processed_at", "sent_at")


class SqliteMessageRepository:
    """SQLite implementation of MessageRepository.

    Every SQLAlchemy failure is re-raised as ``StoreError``; the session is
    rolled back first, so already committed rows are left intact.
    """

    def __init__(self, database: Database) -> None:
        """Initialize the repository.

        Args:
            database: Database instance for session management.
        """
        self._database = database

    async def add(self, message: Message) -> None:
        """Insert a new message.

        Raises:
            StoreError: If the id already exists or the insert fails.
        """
        try:
            async with self._database.get_session() as session:
                session.add(message)
        except IntegrityError as e:
            raise StoreError(f"Message id already exists: {message.id}") from e
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert message: {e}") from e

    async def save(self, message: Message) -> None:
        """Persist status, timestamps and mutable fields of a message.

        Content and provenance columns are never rewritten.

        Raises:
            StoreError: If the message does not exist or the update fails.
        """
        try:
            async with self._database.get_session() as session:
                existing = await session.get(Message, message.id)
                if existing is None:
                    raise StoreError(f"Cannot update missing message: {message.id}")
                for field in _SAVED_FIELDS:
                    setattr(existing, field, getattr(message, field))
                session.add(existing)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to update message {message.id}: {e}") from e

    async def get_by_id(self, message_id: str) -> Message | None:
        try:
            async with self._database.get_session() as session:
                return await session.get(Message, message_id)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load message {message_id}: {e}") from e

    async def list_by_status(
        self, status: MessageStatus | None = None, limit: int | None = None
    ) -> list[Message]:
        """List messages sorted by received_at descending (newest first).

        Args:
            status: Only return messages with this status.
            limit: Maximum number of messages to return.
        """
        statement = select(Message)
        if status is not None:
            statement = statement.where(Message.status == status)
        statement = statement.order_by(Message.received_at.desc())  # type: ignore[attr-defined]
        if limit is not None:
            statement = statement.limit(limit)
        return await self._fetch(statement)

    async def list_templates(self, with_vector_only: bool = False) -> list[Message]:
        """List template messages, oldest first."""
        statement = select(Message).where(Message.is_template == True)  # noqa: E712
        if with_vector_only:
            statement = statement.where(Message.feature_model.is_not(None))  # type: ignore[union-attr]
        statement = statement.order_by(Message.received_at.asc())  # type: ignore[attr-defined]
        return await self._fetch(statement)

    async def count(self) -> int:
        try:
            async with self._database.get_session() as session:
                result = await session.execute(select(func.count()).select_from(Message))
                return result.scalar_one()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count messages: {e}") from e

    async def count_by_status(self) -> dict[MessageStatus, int]:
        counts = {status: 0 for status in MessageStatus}
        try:
            async with self._database.get_session() as session:
                result = await session.execute(
                    select(Message.status, func.count()).group_by(Message.status)
                )
                for status, total in result.all():
                    counts[MessageStatus(status)] = total
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count messages: {e}") from e
        return counts

    async def delete(self, message_ids: list[str]) -> int:
        if not message_ids:
            return 0
        try:
            async with self._database.get_session() as session:
                result = await session.execute(
                    delete(Message).where(Message.id.in_(message_ids))  # type: ignore[attr-defined]
                )
                return result.rowcount or 0
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to delete messages: {e}") from e

    async def _fetch(self, statement) -> list[Message]:  # type: ignore[no-untyped-def]
        try:
            async with self._database.get_session() as session:
                result = await session.execute(statement)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to query messages: {e}") from e
