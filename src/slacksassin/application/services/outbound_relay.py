"""Outbound relay: deliver replies and reconcile the sent state."""

import ulid
from structlog.stdlib import BoundLogger

from slacksassin.application.services.message_store import MessageStore
from slacksassin.domain.entities.message import Message
from slacksassin.domain.errors import (
    DeliveryError,
    DeliveryFailedError,
    InvalidTransitionError,
)
from slacksassin.domain.lifecycle import MessageStatus, can_transition
from slacksassin.infrastructure.relay.client import RelayClient, RelayPayload

TEST_RESPONSE_TEXT = (
    "This is a test response from SlackSassin! "
    "The webhook integration is working correctly."
)
TEST_CHANNEL = "C07976L66R4"
TEST_USER = "U079DR500BC"

LATE_DELIVERY_NOTE = "Reply delivered after the message was {status}"


class OutboundRelay:
    """Sends a message's reply through the relay and marks it ``sent``.

    Delivery is never retried here; a failed delivery leaves the message in
    its previous status unless the caller uses ``send_and_mark_failed``.
    """

    def __init__(
        self, store: MessageStore, client: RelayClient, logger: BoundLogger
    ) -> None:
        self._store = store
        self._client = client
        self._logger = logger

    @property
    def is_configured(self) -> bool:
        return self._client.is_configured

    @property
    def url(self) -> str | None:
        return self._client.url

    @staticmethod
    def build_payload(message: Message, reply_text: str) -> RelayPayload:
        return RelayPayload(
            message_id=message.id,
            response_text=reply_text,
            channel=message.channel_id,
            thread_id=message.thread_id,
            original_message_text=message.text,
            user_id_mention=message.user_id,
        )

    async def deliver(self, message: Message, reply_text: str) -> None:
        """POST the reply without touching the message state.

        Raises:
            RelayNotConfiguredError: If no relay URL is configured.
            DeliveryFailedError: If the reply is empty or the relay rejects it.
            InvalidTransitionError: If the message can no longer be sent.
        """
        if not can_transition(message.status, MessageStatus.SENT):
            raise InvalidTransitionError(
                message.id, message.status.value, MessageStatus.SENT.value
            )
        if not reply_text.strip():
            raise DeliveryFailedError("reply text is empty")
        await self._client.post(self.build_payload(message, reply_text))

    async def send(self, message_id: str, reply_text: str | None = None) -> Message:
        """Deliver a reply and move the message to ``sent``.

        Args:
            message_id: Message to answer.
            reply_text: Text to send; defaults to the message's reply
                (edited reply first, then generated reply).

        Returns:
            The message in ``sent`` state. If its status changed while the
            reply was in flight, the status is kept and ``note`` records the
            delivery.
        """
        message = await self._store.get(message_id)
        if message.status == MessageStatus.SENT:
            return message
        text = message.reply_text if reply_text is None else reply_text
        await self.deliver(message, text)
        try:
            return await self._store.transition(message_id, MessageStatus.SENT)
        except InvalidTransitionError as e:
            self._logger.warning(
                "Reply delivered after message status changed",
                message_id=message_id,
                error=str(e),
            )
            current = await self._store.get(message_id)
            return await self._store.apply(
                message_id,
                note=LATE_DELIVERY_NOTE.format(status=current.status.value),
            )

    async def send_and_mark_failed(
        self, message_id: str, reply_text: str | None = None
    ) -> Message:
        """Like ``send`` but records a delivery failure on the message."""
        try:
            return await self.send(message_id, reply_text)
        except DeliveryError as e:
            await self._store.mark_failed(message_id, str(e))
            raise

    async def send_test(self) -> bool:
        """Post a canned reply to check the relay wiring.

        Returns:
            True if the relay accepted the payload.
        """
        payload = RelayPayload(
            message_id=f"test-{ulid.new()}",
            response_text=TEST_RESPONSE_TEXT,
            channel=TEST_CHANNEL,
            original_message_text="Test message for webhook validation",
            user_id_mention=TEST_USER,
        )
        try:
            await self._client.post(payload)
        except DeliveryError as e:
            self._logger.warning("Relay test failed", error=str(e))
            return False
        return True
