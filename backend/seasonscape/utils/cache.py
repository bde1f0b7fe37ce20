"""Explicit in-memory TTL cache, constructed by the caller and passed in."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    stored_at: float


class TTLCache:
    """Key/value cache whose entries expire `ttl_seconds` after being set.

    A TTL of 0 disables caching: every lookup misses. Every `set` drops expired
    entries, and past `max_entries` the oldest entries are evicted, so the
    cache stays bounded however many distinct keys pass through it. The clock
    is injectable so tests never depend on wall time.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int | None = 128,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if self._expired(entry):
                del self._entries[key]
                return default
            return entry.value

    def set(self, key: str, value: Any) -> None:
        if self.ttl_seconds == 0:
            return
        with self._lock:
            self._drop_expired()
            # Re-setting a key moves it to the back of the eviction order
            self._entries.pop(key, None)
            self._entries[key] = _Entry(value=value, stored_at=self._clock())
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    del self._entries[next(iter(self._entries))]

    def get_or_set(self, key: str, factory: Callable[[], Any]) -> Any:
        sentinel = object()
        value = self.get(key, sentinel)
        if value is sentinel:
            value = factory()
            self.set(key, value)
        return value

    def purge_expired(self) -> int:
        with self._lock:
            purged = self._drop_expired()
        if purged:
            logger.debug("Purged %d expired cache entries", purged)
        return purged

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for e in self._entries.values() if not self._expired(e))

    def _drop_expired(self) -> int:
        stale = [k for k, e in self._entries.items() if self._expired(e)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def _expired(self, entry: _Entry) -> bool:
        return self._clock() - entry.stored_at >= self.ttl_seconds
