"""Mock LLM model for running without a generation backend."""

import asyncio
from typing import Any, AsyncGenerator, AsyncIterable, Sequence, TypeVar

from strands.models import Model
from strands.types.content import Messages
from strands.types.streaming import StreamEvent

T = TypeVar("T")

DEFAULT_CHUNKS = ("<think>The user needs a reply.</think>", "Mock LLM ", "response")


class MockModel(Model):
    """Mock model streaming canned text chunks.

    Args:
        chunks: Text deltas to stream, in order.
        raise_error: Raise instead of streaming.
        chunk_delay: Seconds to sleep before each chunk.
        hang: Never finish after the last chunk (for timeout handling).
    """

    def __init__(
        self,
        chunks: Sequence[str] = DEFAULT_CHUNKS,
        raise_error: bool = False,
        chunk_delay: float = 0.0,
        hang: bool = False,
    ) -> None:
        self._chunks = tuple(chunks)
        self._raise_error = raise_error
        self._chunk_delay = chunk_delay
        self._hang = hang
        self._config: dict[str, Any] = {}
        self.requests: list[Messages] = []

    async def stream(
        self,
        messages: Messages,
        tool_specs: list[Any] | None = None,
        system_prompt: str | None = None,
        **kwargs: Any,
    ) -> AsyncIterable[StreamEvent]:
        """Stream the configured chunks as strands stream events.

        Raises:
            RuntimeError: If raise_error is True.
        """
        self.requests.append(messages)
        if self._raise_error:
            raise RuntimeError("Mock LLM error for testing")

        yield {"messageStart": {"role": "assistant"}}
        yield {"contentBlockStart": {"contentBlockIndex": 0, "start": {}}}
        for chunk in self._chunks:
            if self._chunk_delay:
                await asyncio.sleep(self._chunk_delay)
            yield {
                "contentBlockDelta": {
                    "delta": {"text": chunk},
                    "contentBlockIndex": 0,
                }
            }
        if self._hang:
            await asyncio.Event().wait()
        yield {"contentBlockStop": {"contentBlockIndex": 0}}
        yield {"messageStop": {"stopReason": "end_turn"}}

    async def structured_output(
        self,
        output_model: type[T],
        prompt: Messages,
        **kwargs: Any,
    ) -> AsyncGenerator[dict[str, T | Any], None]:
        """Structured output is not supported by the mock."""
        yield {}
        return

    def update_config(self, **model_config: Any) -> None:
        self._config.update(model_config)

    def get_config(self) -> dict[str, Any]:
        return self._config
