"""Bounded, index-addressable history of Bloch vector snapshots."""

from __future__ import annotations

from collections import deque
from typing import Iterator

from .bloch import BlochVector

DEFAULT_HISTORY_CAPACITY = 600


class HistoryBuffer:
    """Insertion-ordered snapshots; the oldest entry is dropped on overflow.

    Indices always refer to the current contents, so an index taken before
    an overflow may point at a different snapshot afterwards.
    """

    def __init__(self, initial: BlochVector,
                 capacity: int = DEFAULT_HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._entries: deque[BlochVector] = deque([initial], maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def latest(self) -> BlochVector:
        return self._entries[-1]

    def append(self, vector: BlochVector):
        self._entries.append(vector)

    def replace(self, vector: BlochVector):
        """Discard everything and start over from ``vector``."""
        self._entries.clear()
        self._entries.append(vector)

    def clamp_index(self, index: int) -> int:
        return max(0, min(index, len(self._entries) - 1))

    def snapshot(self) -> tuple[BlochVector, ...]:
        return tuple(self._entries)

    def __getitem__(self, index: int) -> BlochVector:
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[BlochVector]:
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"HistoryBuffer(len={len(self)}, capacity={self._capacity})"
