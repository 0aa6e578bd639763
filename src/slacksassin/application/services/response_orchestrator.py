"""Reply generation through a streaming text-generation backend."""

import asyncio

from jinja2 import Template
from structlog.stdlib import BoundLogger

from slacksassin.application.services.message_store import MessageStore
from slacksassin.config.models import GenerationConfig
from slacksassin.domain.entities.message import Message
from slacksassin.domain.errors import (
    BackendUnreachableError,
    EmptyResponseError,
    GenerationError,
    GenerationTimeoutError,
    InvalidTransitionError,
    NoModelConfiguredError,
)
from slacksassin.domain.lifecycle import MessageStatus
from slacksassin.domain.think_filter import ThinkBlockFilter
from slacksassin.infrastructure.llm.backend import TextGenerationBackend

PROMPT_TEMPLATE = Template(
    "{{ system_prompt }}\n"
    "\n"
    "Context:\n"
    "- User: {{ message.user_name or 'Someone' }}\n"
    "- Channel: #{{ message.channel_name or 'unknown' }}\n"
    "- Timestamp: {{ timestamp }}\n"
    "\n"
    "Message to respond to:\n"
    "{{ message.text }}\n"
    "\n"
    "Please provide a professional, helpful response appropriate for this "
    "Slack message."
)

TIMESTAMP_FORMAT = "%b %d, %Y at %H:%M UTC"


class ResponseOrchestrator:
    """Generates a reply for one message and records the outcome.

    The message moves ``pending -> processing`` and then to ``completed`` with
    the filtered reply, or to ``failed`` with a readable error. Nothing is
    retried automatically.

    Args:
        store: Message store.
        backend: Streaming text-generation backend.
        config: Generation configuration.
        logger: Structured logger.
    """

    def __init__(
        self,
        store: MessageStore,
        backend: TextGenerationBackend,
        config: GenerationConfig,
        logger: BoundLogger,
    ) -> None:
        self._store = store
        self._backend = backend
        self._config = config
        self._logger = logger

    def build_prompt(self, message: Message) -> str:
        """Render the generation prompt for a message."""
        return PROMPT_TEMPLATE.render(
            system_prompt=self._config.system_prompt,
            message=message,
            timestamp=message.received_at.strftime(TIMESTAMP_FORMAT),
        )

    async def generate(self, message_id: str) -> str:
        """Generate and store a reply.

        Args:
            message_id: A message in ``pending`` state.

        Returns:
            The filtered reply text.

        Raises:
            GenerationError: If generation failed; the message is ``failed``.
            InvalidTransitionError: If the message cannot be processed, or was
                dismissed while the reply was being generated.
        """
        message = await self._store.transition(message_id, MessageStatus.PROCESSING)
        self._logger.info("Generating reply", message_id=message_id)

        try:
            reply = await self._run(message)
        except GenerationError as e:
            await self._fail(message_id, e)
            raise
        except Exception as e:
            error = GenerationError(f"Generation failed: {e}")
            await self._fail(message_id, error)
            raise error from e

        try:
            await self._store.apply(
                message_id, MessageStatus.COMPLETED, generated_reply=reply
            )
        except InvalidTransitionError:
            self._logger.info(
                "Discarding reply for message changed during generation",
                message_id=message_id,
            )
            raise

        self._logger.info(
            "Reply generated", message_id=message_id, response_length=len(reply)
        )
        return reply

    async def _run(self, message: Message) -> str:
        if not await self._backend.reachable():
            raise BackendUnreachableError(self._backend.base_url)
        if not self._backend.model_id:
            raise NoModelConfiguredError()

        prompt = self.build_prompt(message)
        self._logger.debug("Built prompt", message_id=message.id, prompt=prompt)

        think_filter = ThinkBlockFilter(
            self._config.think_open, self._config.think_close
        )
        try:
            async with asyncio.timeout(self._config.timeout):
                async for chunk in self._backend.stream(prompt):
                    think_filter.feed(chunk)
        except TimeoutError as e:
            raise GenerationTimeoutError(self._config.timeout) from e

        if think_filter.thoughts:
            self._logger.debug(
                "Removed thinking spans",
                message_id=message.id,
                count=len(think_filter.thoughts),
            )
        reply = think_filter.finish()
        if not reply:
            raise EmptyResponseError()
        return reply

    async def _fail(self, message_id: str, error: GenerationError) -> None:
        self._logger.error(
            "Reply generation failed", message_id=message_id, error=str(error)
        )
        try:
            await self._store.mark_failed(message_id, str(error))
        except InvalidTransitionError:
            self._logger.info(
                "Message changed during generation, keeping its status",
                message_id=message_id,
            )
