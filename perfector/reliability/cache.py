"""Simple TTL key-value cache with lazy expiry."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

_SWEEP_THRESHOLD = 200


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


def _now_ms() -> float:
    return time.time() * 1000


class TTLCache:
    def __init__(
        self,
        sweep_threshold: int = _SWEEP_THRESHOLD,
        clock: Callable[[], float] = _now_ms,
    ):
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweep_threshold = sweep_threshold
        self._clock = clock

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at < self._clock():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_ms: float) -> None:
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=now + ttl_ms)
            if len(self._entries) > self._sweep_threshold:
                for k in [k for k, v in self._entries.items() if v.expires_at < now]:
                    del self._entries[k]

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


_default_cache = TTLCache()


def cache_get(key: str) -> Any | None:
    return _default_cache.get(key)


def cache_set(key: str, value: Any, ttl_ms: float) -> None:
    _default_cache.set(key, value, ttl_ms)


def cache_delete(key: str) -> bool:
    return _default_cache.delete(key)


def get_cache() -> TTLCache:
    return _default_cache
