"""
Time-bounded result caches.

TTLCache holds a single value (the global feed). BoundedKeyedCache holds one
value per key (per-author profile/feed data) with a hard capacity; when a new
key would overflow it, the oldest-inserted key is dropped. Overwriting an
existing key keeps its original insertion position.

Both report a miss with the ``MISS`` sentinel so that ``None`` can be cached.
Recomputation happens outside the lock. Each cache keeps a generation counter
that invalidate/evict/clear bump; get_or_compute only stores its result if no
invalidation landed while it was computing, so a stale value never outlives
the write that invalidated it.
"""

from __future__ import annotations
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")
Clock = Callable[[], float]


class _Miss:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Any = _Miss()


@dataclass
class CacheEntry(Generic[T]):
    value: T
    written_at: float


class TTLCache(Generic[T]):
    """Single-slot cache with a fixed TTL and explicit invalidation."""

    def __init__(self, ttl: float, clock: Clock = time.time):
        self.ttl = float(ttl)
        self._clock = clock
        self._entry: Optional[CacheEntry[T]] = None
        self._lock = threading.Lock()
        self._generation = 0

    def get(self) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entry
        if entry is None or now - entry.written_at >= self.ttl:
            return MISS
        return entry.value

    def put(self, value: T) -> None:
        entry = CacheEntry(value, self._clock())
        with self._lock:
            self._entry = entry

    def invalidate(self) -> None:
        with self._lock:
            self._entry = None
            self._generation += 1

    def get_or_compute(self, compute: Callable[[], T]) -> T:
        with self._lock:
            generation = self._generation
        value = self.get()
        if value is MISS:
            value = compute()
            entry = CacheEntry(value, self._clock())
            with self._lock:
                if self._generation == generation:
                    self._entry = entry
        return value


class BoundedKeyedCache(Generic[T]):
    """Per-key TTL cache with FIFO eviction by first insertion."""

    def __init__(self, ttl: float, capacity: int, clock: Clock = time.time):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.ttl = float(ttl)
        self.capacity = int(capacity)
        self._clock = clock
        # dicts keep insertion order and assigning to an existing key leaves it in place
        self._entries: Dict[Hashable, CacheEntry[T]] = {}
        self._lock = threading.Lock()
        self._generation = 0

    def get(self, key: Hashable) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or now - entry.written_at >= self.ttl:
            return MISS
        return entry.value

    def put(self, key: Hashable, value: T) -> None:
        entry = CacheEntry(value, self._clock())
        with self._lock:
            self._store(key, entry)

    def _store(self, key: Hashable, entry: CacheEntry[T]) -> None:
        # caller holds self._lock
        if key not in self._entries and len(self._entries) >= self.capacity:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
        self._entries[key] = entry

    def evict(self, key: Hashable) -> bool:
        """Remove key if present. Returns whether anything was removed."""
        with self._lock:
            self._generation += 1
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generation += 1

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        with self._lock:
            generation = self._generation
        value = self.get(key)
        if value is MISS:
            value = compute()
            entry = CacheEntry(value, self._clock())
            with self._lock:
                if self._generation == generation:
                    self._store(key, entry)
        return value

    def keys(self) -> list:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
