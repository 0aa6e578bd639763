"""Inbound webhook payload (Zapier "new Slack mention" shape)."""

from pydantic import BaseModel, ConfigDict

from slacksassin.domain.entities.message import Message


class InboundChannel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str


class InboundUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    real_name: str | None = None

    @property
    def display_name(self) -> str:
        """Return the real name, falling back to the user handle."""
        real_name = (self.real_name or "").strip()
        return real_name or self.name


class InboundPayload(BaseModel):
    """Fields read from an inbound webhook body; anything else is ignored."""

    model_config = ConfigDict(extra="ignore")

    text: str
    channel: InboundChannel
    user: InboundUser
    ts: str
    thread_ts: str | None = None

    def to_message(self) -> Message:
        """Build the pending Message for this payload."""
        return Message(
            text=self.text,
            channel_id=self.channel.id,
            channel_name=self.channel.name,
            user_id=self.user.id,
            user_name=self.user.display_name,
            thread_id=self.thread_ts,
            source_ts=self.ts,
            message_type=Message.type_for_channel(self.channel.id),
        )
