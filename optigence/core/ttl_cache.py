"""Thread-safe, capacity-bounded TTL cache.

Used by the intent classifier and entity extractor to avoid repeat LLM calls
for identical text. Entries expire after `ttl_seconds`; when the cache is full
the least recently used entry is evicted.
"""

import hashlib
import threading
from collections import OrderedDict
from time import monotonic
from typing import Any, Callable


def make_cache_key(*parts: str | None) -> str:
    """Hash the inputs so raw user text is never held as a key."""
    digest = hashlib.sha256()
    for part in parts:
        digest.update((part or "").encode("utf-8"))
        digest.update(b"\x00")
    return digest.hexdigest()


class TTLCache:
    """Bounded mapping whose entries expire after a fixed lifetime."""

    def __init__(
        self,
        max_entries: int = 512,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, stored_at = entry
            if now - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        with self._lock:
            self._entries[key] = (value, now)
            self._entries.move_to_end(key)
            self._purge_expired(now)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge_expired(self, now: float) -> None:
        # Caller holds the lock
        expired = [k for k, (_, ts) in self._entries.items() if now - ts >= self.ttl_seconds]
        for k in expired:
            del self._entries[k]
