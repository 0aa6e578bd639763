"""Streaming removal of model "thinking" spans from generated text."""

DEFAULT_OPEN_MARKER = "<think>"
DEFAULT_CLOSE_MARKER = "</think>"


class ThinkBlockFilter:
    """Strip ``<think>…</think>`` spans from text delivered in chunks.

    Characters are processed one at a time, so markers split across chunks
    are recognised the same way as markers inside one chunk. The opening
    marker is only recognised once its last character arrives; at that point
    it is removed from the visible buffer. Text inside an unterminated span is
    never emitted.

    Example:
        >>> f = ThinkBlockFilter()
        >>> f.feed("<thi")
        >>> f.feed("nk>reasoning</think>Sure, here is...")
        >>> f.finish()
        'Sure, here is...'
    """

    def __init__(
        self,
        open_marker: str = DEFAULT_OPEN_MARKER,
        close_marker: str = DEFAULT_CLOSE_MARKER,
    ) -> None:
        if not open_marker or not close_marker:
            raise ValueError("Think markers cannot be empty")
        self._open = open_marker
        self._close = close_marker
        self._visible: list[str] = []
        self._thinking: list[str] = []
        self._in_block = False
        self.thoughts: list[str] = []

    @property
    def in_block(self) -> bool:
        """Return True while inside an unterminated span."""
        return self._in_block

    @property
    def text(self) -> str:
        """Return the visible text accumulated so far (untrimmed)."""
        return "".join(self._visible)

    def feed(self, chunk: str) -> None:
        """Consume the next chunk of raw model output."""
        for char in chunk:
            if self._in_block:
                self._thinking.append(char)
                if self._ends_with(self._thinking, self._close):
                    del self._thinking[-len(self._close) :]
                    self.thoughts.append("".join(self._thinking))
                    self._thinking = []
                    self._in_block = False
            else:
                self._visible.append(char)
                if self._ends_with(self._visible, self._open):
                    del self._visible[-len(self._open) :]
                    self._in_block = True

    def finish(self) -> str:
        """Return the filtered text with surrounding whitespace trimmed."""
        return self.text.strip()

    @staticmethod
    def _ends_with(buffer: list[str], marker: str) -> bool:
        if len(buffer) < len(marker):
            return False
        return "".join(buffer[-len(marker) :]) == marker


def strip_think_blocks(
    text: str,
    open_marker: str = DEFAULT_OPEN_MARKER,
    close_marker: str = DEFAULT_CLOSE_MARKER,
) -> str:
    """Filter a complete string in one pass."""
    think_filter = ThinkBlockFilter(open_marker, close_marker)
    think_filter.feed(text)
    return think_filter.finish()
