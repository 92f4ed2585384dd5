"""Fixed-capacity FIFO byte buffer."""

from __future__ import annotations

from collections import deque
from itertools import islice


class BufferFullError(Exception):
    """Raised when a single byte is written to a full buffer."""


class BufferEmptyError(Exception):
    """Raised when a byte is read from an empty buffer."""


class CircularBuffer:
    """A ring of bytes with fixed capacity.

    Single-byte writes refuse to overwrite; block writes discard the oldest
    bytes to make room.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._data: deque[int] = deque(maxlen=capacity)

    def write(self, data: int) -> None:
        """Append one byte; raise BufferFullError if there is no room."""
        if not 0 <= data <= 0xFF:
            raise ValueError(f"byte out of range: {data}")
        if self.is_full():
            raise BufferFullError("circular buffer is full")
        self._data.append(data)

    def read(self) -> int:
        """Remove and return the oldest byte; raise BufferEmptyError if empty."""
        if self.is_empty():
            raise BufferEmptyError("circular buffer is empty")
        return self._data.popleft()

    def write_block(self, data: bytes) -> int:
        """Append all bytes, overwriting the oldest when full; return the count written."""
        block = bytes(data)
        self._data.extend(block)
        return len(block)

    def read_block(self, length: int) -> bytes:
        """Remove and return up to ``length`` of the oldest bytes."""
        count = min(max(length, 0), len(self._data))
        return bytes(self._data.popleft() for _ in range(count))

    def peek(self, offset: int, length: int) -> bytes:
        """Return up to ``length`` bytes starting ``offset`` bytes past the oldest, without removing them."""
        if offset < 0:
            raise ValueError("offset must not be negative")
        if length <= 0:
            return b""
        return bytes(islice(self._data, offset, offset + length))

    def is_full(self) -> bool:
        return len(self._data) == self.capacity

    def is_empty(self) -> bool:
        return not self._data

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def __str__(self) -> str:
        content = bytes(self._data).decode("latin-1")
        return f"Circular buffer ({len(self)}/{self.capacity} bytes): {content}"