"""HTTP client for the outbound relay webhook."""

from datetime import datetime, timezone

import aiohttp
from pydantic import BaseModel, Field
from structlog.stdlib import BoundLogger

from slacksassin.config.models import RelayConfig
from slacksassin.domain.errors import DeliveryFailedError, RelayNotConfiguredError

USER_AGENT = "SlackSassin-Response/1.0"

# Longest relay response body kept for logs and errors.
MAX_LOGGED_BODY = 500


class RelayPayload(BaseModel):
    """Reply delivered to the relay, which posts it back into Slack."""

    message_id: str
    response_text: str
    channel: str
    thread_id: str | None = None
    original_message_text: str
    user_id_mention: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RelayClient:
    """Posts ``RelayPayload`` documents to the configured relay URL.

    One POST per call, no retries. The underlying ``aiohttp.ClientSession`` is
    created on first use and released by ``close()``.

    Args:
        config: Relay configuration.
        logger: Structured logger.
    """

    def __init__(self, config: RelayConfig, logger: BoundLogger) -> None:
        self._config = config
        self._logger = logger
        self._session: aiohttp.ClientSession | None = None

    @property
    def url(self) -> str | None:
        return self._config.url or None

    @property
    def is_configured(self) -> bool:
        return self.url is not None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.timeout),
                headers={"User-Agent": USER_AGENT},
            )
        return self._session

    async def post(self, payload: RelayPayload) -> int:
        """Deliver a payload.

        Returns:
            The 2xx status code returned by the relay.

        Raises:
            RelayNotConfiguredError: If no relay URL is configured.
            DeliveryFailedError: On a non-2xx answer or a transport error.
        """
        url = self.url
        if url is None:
            raise RelayNotConfiguredError()

        self._logger.info(
            "Sending reply to relay",
            message_id=payload.message_id,
            channel=payload.channel,
            response_preview=payload.response_text[:50],
        )
        try:
            async with self._get_session().post(
                url, json=payload.model_dump(mode="json")
            ) as response:
                body = (await response.text())[:MAX_LOGGED_BODY]
                status = response.status
        except (aiohttp.ClientError, TimeoutError) as e:
            self._logger.error(
                "Relay request failed", message_id=payload.message_id, error=str(e)
            )
            raise DeliveryFailedError(str(e) or type(e).__name__) from e

        if not 200 <= status < 300:
            self._logger.error(
                "Relay returned error status",
                message_id=payload.message_id,
                status=status,
                body=body,
            )
            raise DeliveryFailedError(f"relay returned HTTP {status}", status=status)

        self._logger.info(
            "Relay accepted reply", message_id=payload.message_id, status=status
        )
        return status

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
