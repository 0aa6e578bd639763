"""MessageRepository protocol."""

from typing import Protocol

from slacksassin.domain.entities.message import Message
from slacksassin.domain.lifecycle import MessageStatus


class MessageRepository(Protocol):
    """Repository protocol for messages.

    Defines the persistence interface used by ``MessageStore``. Implementations
    raise ``StoreError`` when the underlying storage fails.
    """

    async def add(self, message: Message) -> None:
        """Insert a new message.

        Args:
            message: The message to insert. Its id must be unused.
        """
        ...

    async def save(self, message: Message) -> None:
        """Persist the mutable fields of an existing message.

        Args:
            message: The message to update.
        """
        ...

    async def get_by_id(self, message_id: str) -> Message | None:
        """Get a message by ID.

        Returns:
            The message if found, None otherwise.
        """
        ...

    async def list_by_status(
        self, status: MessageStatus | None = None, limit: int | None = None
    ) -> list[Message]:
        """List messages, newest first, optionally filtered by status."""
        ...

    async def list_templates(self, with_vector_only: bool = False) -> list[Message]:
        """List template messages, optionally only those with a cached vector."""
        ...

    async def count(self) -> int:
        """Return the total number of messages."""
        ...

    async def count_by_status(self) -> dict[MessageStatus, int]:
        """Return the number of messages per status."""
        ...

    async def delete(self, message_ids: list[str]) -> int:
        """Delete messages and return how many were removed."""
        ...
