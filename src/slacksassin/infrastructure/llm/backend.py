"""Streaming text-generation backend built on strands models."""

from collections.abc import AsyncIterator, Callable
from typing import Protocol

import aiohttp
from strands.types.content import Messages
from structlog.stdlib import BoundLogger

from slacksassin.config.models import GenerationConfig
from slacksassin.infrastructure.llm.model_factory import (
    Model,
    create_model,
    mock_enabled,
)


class TextGenerationBackend(Protocol):
    """What the response orchestrator needs from a generation backend."""

    @property
    def model_id(self) -> str:
        """Configured model identifier; empty when unset."""
        ...

    @property
    def base_url(self) -> str | None:
        """Backend location, for error messages."""
        ...

    async def reachable(self) -> bool:
        """Return True if the backend answers."""
        ...

    def stream(self, prompt: str) -> AsyncIterator[str]:
        """Stream the reply to ``prompt`` as text chunks."""
        ...


class StrandsBackend:
    """Generation backend streaming text deltas from a strands model.

    A fresh model is created for every request; requests share no
    conversation history.

    Args:
        config: Generation configuration.
        logger: Structured logger.
        model_factory: Builds the strands model from the configuration.
    """

    def __init__(
        self,
        config: GenerationConfig,
        logger: BoundLogger,
        model_factory: Callable[[GenerationConfig], Model] = create_model,
    ) -> None:
        self._config = config
        self._logger = logger
        self._model_factory = model_factory

    @property
    def model_id(self) -> str:
        return self._config.model_id.strip()

    @property
    def base_url(self) -> str | None:
        return self._config.base_url

    async def reachable(self) -> bool:
        """Probe ``base_url`` with a GET; any non-5xx answer counts.

        Without a base URL (hosted LiteLLM providers) or with MOCK_LLM set
        there is nothing to probe and the backend is assumed reachable.
        """
        if not self._config.base_url or mock_enabled():
            return True
        timeout = aiohttp.ClientTimeout(total=self._config.probe_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self._config.base_url) as response:
                    ok = response.status < 500
        except (aiohttp.ClientError, TimeoutError) as e:
            self._logger.warning(
                "Generation backend probe failed",
                base_url=self._config.base_url,
                error=str(e),
            )
            return False
        if not ok:
            self._logger.warning(
                "Generation backend unhealthy",
                base_url=self._config.base_url,
                status=response.status,
            )
        return ok

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Stream text deltas for a single-turn user prompt."""
        model = self._model_factory(self._config)
        messages: Messages = [{"role": "user", "content": [{"text": prompt}]}]
        async for event in model.stream(messages):
            delta = event.get("contentBlockDelta")
            if not delta:
                continue
            text = delta.get("delta", {}).get("text")
            if text:
                yield text
