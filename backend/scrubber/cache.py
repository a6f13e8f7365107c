from __future__ import annotations

import hashlib
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

V = TypeVar("V")

DEFAULT_MAX_SIZE = 1000
DEFAULT_TTL_SECONDS = 300.0


@dataclass
class _CacheEntry(Generic[V]):
    value: V
    stored_at: float


class DecisionCache(Generic[V]):
    """Bounded LRU map whose entries also expire after ``ttl`` seconds.

    Keys are hex digests, so the cache never holds raw content.  All
    operations take an internal lock and are safe to call from any thread.
    """

    def __init__(
        self,
        max_size: int = DEFAULT_MAX_SIZE,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self.max_size = max_size
        self.ttl = ttl
        self._clock = clock
        self._entries: OrderedDict[str, _CacheEntry[V]] = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def hash_key(content: str, options_payload: str = "") -> str:
        """SHA-256 over the content and the canonical options payload."""
        digest = hashlib.sha256()
        digest.update(content.encode("utf-8"))
        digest.update(b"\x00")
        digest.update(options_payload.encode("utf-8"))
        return digest.hexdigest()

    def _expired(self, entry: _CacheEntry[V], now: float) -> bool:
        return now - entry.stored_at > self.ttl

    def get(self, key: str) -> V | None:
        """Return the live value for *key* and mark it most recently used."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry, self._clock()):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def has(self, key: str) -> bool:
        """True if *key* holds a live entry.  Does not affect LRU order."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._expired(entry, self._clock()):
                del self._entries[key]
                return False
            return True

    def set(self, key: str, value: V) -> None:
        with self._lock:
            self._entries.pop(key, None)
            while len(self._entries) >= self.max_size:
                self._entries.popitem(last=False)
            self._entries[key] = _CacheEntry(value=value, stored_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        """Number of stored entries, including any not yet found expired."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()
