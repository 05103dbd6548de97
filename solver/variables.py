# solver/variables.py
from __future__ import annotations


class VariableAllocator:
    """Hands out DIMACS variable ids 1, 2, 3, ... for a single solve."""

    def __init__(self, start_after: int = 0):
        if start_after < 0:
            raise ValueError("start_after cannot be negative")
        self._last = int(start_after)

    def next(self) -> int:
        self._last += 1
        return self._last

    def take(self, count: int):
        return [self.next() for _ in range(max(0, int(count)))]

    @property
    def max_id(self) -> int:
        return self._last

    def replay(self) -> "VariableAllocator":
        """Fresh allocator continuing after this one's high-water mark."""
        return VariableAllocator(self._last)

    def __repr__(self) -> str:
        return f"VariableAllocator(max_id={self._last})"
