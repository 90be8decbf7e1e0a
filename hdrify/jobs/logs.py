"""
Bounded log buffer for the active conversion job.
"""

from collections import deque
from typing import Iterator


DEFAULT_CAPACITY = 25


class LogBuffer:
    """
    Keeps the most recent engine log lines of one job.

    Appending is O(1); when full the oldest line is dropped. The
    orchestrator resets the buffer at the start of every job.

    Example:
        >>> logs = LogBuffer(capacity=2)
        >>> for line in ("a", "b", "c"):
        ...     logs.append(line)
        >>> logs.lines
        ['b', 'c']
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Log capacity must be positive, got {capacity}")
        self._lines: deque[str] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._lines.maxlen

    @property
    def lines(self) -> list[str]:
        """Retained lines, oldest first."""
        return list(self._lines)

    def append(self, line: str) -> None:
        """Add a line, evicting the oldest when full."""
        self._lines.append(line)

    def reset(self) -> None:
        """Drop every retained line."""
        self._lines.clear()

    def tail(self, count: int) -> list[str]:
        """Return up to `count` most recent lines, oldest first."""
        if count <= 0:
            return []
        return list(self._lines)[-count:]

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._lines))

    def __len__(self) -> int:
        return len(self._lines)

    def __repr__(self) -> str:
        return f"LogBuffer({len(self)}/{self.capacity})"
