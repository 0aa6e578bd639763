"""Message entity for inbound Slack events and their replies."""

from datetime import datetime, timezone
from enum import Enum

import ulid
from sqlalchemy import Column, Index
from sqlalchemy.types import JSON
from sqlmodel import Field, SQLModel

from slacksassin.domain.lifecycle import MessageStatus


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class MessageType(str, Enum):
    """How the message reached the bot."""

    MENTION = "mention"
    KEYWORD = "keyword"
    DM = "dm"


class Message(SQLModel, table=True):
    """An inbound Slack message tracked through the review lifecycle.

    Content and provenance fields are immutable once created. Status and reply
    fields are only changed through ``MessageStore``.

    Attributes:
        id: ULID assigned at creation.
        text: Original message content.
        channel_id: Slack channel ID.
        channel_name: Slack channel name.
        user_id: Sender's user ID.
        user_name: Sender's display name.
        thread_id: Parent thread timestamp, if any.
        source_ts: Slack timestamp string of the message.
        message_type: Mention, keyword match or direct message.
        status: Lifecycle status.
        generated_reply: Reply produced by the model or by an auto-response.
        edited_reply: Operator override, preferred over generated_reply.
        error: Last failure description.
        note: Audit note, e.g. the confidence of an auto-response.
        auto_response_source_id: Template message used for an auto-response.
        is_template: Whether the reply may answer future similar messages.
        feature_vector: Cached similarity vector of ``text``.
        feature_model: Name of the extractor that produced feature_vector.
        received_at: Time the webhook was accepted.
        processed_at: Time processing finished.
        sent_at: Time the relay accepted the reply.
    """

    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_status_received", "status", "received_at"),
        Index("idx_template", "is_template", "feature_model"),
    )

    id: str = Field(default_factory=lambda: str(ulid.new()), primary_key=True)
    text: str
    channel_id: str = Field(index=True)
    channel_name: str | None = None
    user_id: str
    user_name: str | None = None
    thread_id: str | None = None
    source_ts: str
    message_type: MessageType = Field(default=MessageType.MENTION)
    status: MessageStatus = Field(default=MessageStatus.PENDING, index=True)
    generated_reply: str | None = None
    edited_reply: str | None = None
    error: str | None = None
    note: str | None = None
    auto_response_source_id: str | None = None
    is_template: bool = Field(default=False, index=True)
    feature_vector: list[float] | None = Field(default=None, sa_column=Column(JSON))
    feature_model: str | None = None
    received_at: datetime = Field(default_factory=utc_now)
    processed_at: datetime | None = None
    sent_at: datetime | None = None

    @property
    def reply_text(self) -> str:
        """Return the reply to send, preferring the operator's edit."""
        return self.edited_reply or self.generated_reply or ""

    @property
    def can_send(self) -> bool:
        """Return True if an operator may send this message's reply now."""
        return self.status == MessageStatus.COMPLETED and bool(self.reply_text)

    @staticmethod
    def type_for_channel(channel_id: str) -> MessageType:
        """Classify a message by its channel id (``D…`` ids are DMs)."""
        return MessageType.DM if channel_id.startswith("D") else MessageType.MENTION


# Fields MessageStore may change after creation.
MUTABLE_FIELDS = frozenset(
    {
        "generated_reply",
        "edited_reply",
        "error",
        "note",
        "auto_response_source_id",
        "is_template",
        "feature_vector",
        "feature_model",
    }
)
