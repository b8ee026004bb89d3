"""Caller-owned bounded string buffers."""
from __future__ import annotations


class BufferOverflow(ValueError):
    """Raised when a write does not fit and the buffer refuses to truncate."""


class BoundedBuffer:
    """Fixed-capacity text holder; capacity counts UTF-8 encoded bytes.

    With ``truncate=True`` an oversized write keeps the longest prefix of whole
    characters that fits. With ``truncate=False`` it raises ``BufferOverflow``
    and leaves the current value untouched.
    """

    def __init__(self, capacity: int, *, truncate: bool = True) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.truncate = truncate
        self._value = ""

    @property
    def value(self) -> str:
        return self._value

    def fits(self, text: str) -> bool:
        return len(text.encode("utf-8")) <= self.capacity

    def write(self, text: str) -> str:
        encoded = text.encode("utf-8")
        if len(encoded) > self.capacity:
            if not self.truncate:
                raise BufferOverflow(
                    f"{len(encoded)} bytes do not fit in a {self.capacity}-byte buffer"
                )
            # Drop a multi-byte character split by the cut.
            text = encoded[: self.capacity].decode("utf-8", errors="ignore")
        self._value = text
        return text

    def __len__(self) -> int:
        return len(self._value.encode("utf-8"))

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"BoundedBuffer(capacity={self.capacity}, value={self._value!r})"
