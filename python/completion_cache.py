"""Bounded least-recently-used store for finished completions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Generic, Hashable, Optional, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DEFAULT_CAPACITY = 100


@dataclass(frozen=True)
class CacheEntry:
    """A cached completion and the clock reading at which it was produced."""

    completion_text: str
    created_at: float


@dataclass
class _Slot(Generic[V]):
    value: V
    last_used: int


class LRUCache(Generic[K, V]):
    """Recency-ordered map with a fixed capacity.

    Recency is a logical counter bumped on every ``get`` hit and every ``set``,
    so ordering stays exact even when many touches land within one clock tick.
    Staleness is not tracked here: a present entry is always a hit, and callers
    that care about age store a timestamp in the value.
    """

    def __init__(self, max_size: int = DEFAULT_CAPACITY):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._slots: Dict[K, _Slot[V]] = {}
        self._counter = 0

    def __len__(self) -> int:
        return len(self._slots)

    def _tick(self) -> int:
        value = self._counter
        self._counter += 1
        return value

    def get(self, key: K) -> Optional[V]:
        slot = self._slots.get(key)
        if slot is None:
            return None
        slot.last_used = self._tick()
        return slot.value

    def set(self, key: K, value: V) -> None:
        if key not in self._slots and len(self._slots) >= self.max_size:
            oldest = min(self._slots, key=lambda k: self._slots[k].last_used)
            del self._slots[oldest]
        self._slots[key] = _Slot(value=value, last_used=self._tick())

    def has(self, key: K) -> bool:
        """Membership test; does not count as a use."""
        return key in self._slots

    def clear(self) -> None:
        self._slots.clear()
        self._counter = 0
