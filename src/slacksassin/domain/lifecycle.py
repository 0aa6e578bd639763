"""Message lifecycle rules."""

from enum import Enum


class MessageStatus(str, Enum):
    """Status of a message in the review lifecycle."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    SENT = "sent"
    DISMISSED = "dismissed"
    FAILED = "failed"


# pending -> sent is the auto-response edge, pending -> failed its delivery
# failure. failed -> pending only happens through an explicit retry.
TRANSITIONS: dict[MessageStatus, frozenset[MessageStatus]] = {
    MessageStatus.PENDING: frozenset(
        {
            MessageStatus.PROCESSING,
            MessageStatus.SENT,
            MessageStatus.FAILED,
            MessageStatus.DISMISSED,
        }
    ),
    MessageStatus.PROCESSING: frozenset(
        {MessageStatus.COMPLETED, MessageStatus.FAILED, MessageStatus.DISMISSED}
    ),
    MessageStatus.COMPLETED: frozenset(
        {MessageStatus.SENT, MessageStatus.FAILED, MessageStatus.DISMISSED}
    ),
    MessageStatus.FAILED: frozenset({MessageStatus.PENDING, MessageStatus.DISMISSED}),
    MessageStatus.SENT: frozenset(),
    MessageStatus.DISMISSED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in TRANSITIONS.items() if not targets
)


RETRY_ONLY = frozenset({(MessageStatus.FAILED, MessageStatus.PENDING)})


def can_transition(
    current: MessageStatus, target: MessageStatus, *, retry: bool = False
) -> bool:
    """Return True if moving from ``current`` to ``target`` is allowed.

    Re-requesting the current status is always allowed (a no-op). Edges in
    ``RETRY_ONLY`` additionally require ``retry=True``.
    """
    if current == target:
        return True
    if (current, target) in RETRY_ONLY and not retry:
        return False
    return target in TRANSITIONS[current]
