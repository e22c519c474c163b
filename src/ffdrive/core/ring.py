"""Bounded line retention and newline splitting.

LinesRing keeps the most recent diagnostic lines of a run so that a useful
error message can be produced without holding the entire ffmpeg output in
memory. LineSplitter turns raw pipe chunks into complete lines.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

# ffmpeg terminates its live stats line with a bare carriage return
NEWLINE_RE = re.compile(r"\r\n|\r|\n")


class LinesRing:
    """Fixed-capacity FIFO of the most recent lines.

    Args:
        max_lines: Number of lines to retain. 0 keeps every line.

    Example:
        >>> ring = LinesRing(2)
        >>> for line in ("a", "b", "c"):
        ...     ring.append(line)
        >>> ring.get()
        'b\\nc'
    """

    def __init__(self, max_lines: int = 100) -> None:
        if max_lines < 0:
            raise ValueError(f"max_lines must be >= 0, got {max_lines}")
        self.max_lines = max_lines
        self._lines: deque[str] = deque(maxlen=max_lines or None)
        self._subscribers: list[Callable[[str], None]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, callback: Callable[[str], None]) -> None:
        """Register a callback for retained and future lines.

        Lines already in the ring are replayed to the callback immediately.
        """
        for line in self._lines:
            callback(line)
        self._subscribers.append(callback)

    def append(self, line: str) -> None:
        """Retain a line, evicting the oldest one when at capacity.

        Appending after close() is a no-op.
        """
        if self._closed:
            return
        self._lines.append(line)
        for callback in self._subscribers:
            try:
                callback(line)
            except Exception as e:
                logger.warning("Line subscriber raised: %s", e)

    def get(self) -> str:
        """Return the retained lines joined with newlines, oldest first."""
        return "\n".join(self._lines)

    def lines(self) -> list[str]:
        """Return a copy of the retained lines, oldest first."""
        return list(self._lines)

    def close(self) -> None:
        """Release retained lines and stop accepting new ones.

        Callers that need the text must call get() before closing.
        """
        self._closed = True
        self._subscribers.clear()
        self._lines.clear()

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._lines))


class LineSplitter:
    """Incrementally split decoded text into complete lines.

    A partial trailing line is buffered until the next chunk completes it
    or flush() is called at end of stream. Empty lines are dropped.
    """

    def __init__(self) -> None:
        self._partial = ""
        self._pending_cr = False

    def feed(self, chunk: str) -> list[str]:
        """Add a chunk and return the lines it completed."""
        if not chunk:
            return []
        # A "\r\n" pair may be split across two chunks
        if self._pending_cr and chunk.startswith("\n"):
            chunk = chunk[1:]
        self._pending_cr = chunk.endswith("\r")

        parts = NEWLINE_RE.split(self._partial + chunk)
        self._partial = parts.pop()
        return [part for part in parts if part]

    def flush(self) -> list[str]:
        """Return the buffered partial line, if any, and reset."""
        partial, self._partial = self._partial, ""
        self._pending_cr = False
        return [partial] if partial else []
