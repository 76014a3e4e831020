"""In-process idempotency cache: collapse duplicate side-effecting calls."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

IDEMPOTENCY_TTL_MS = 5 * 60 * 1000
_SWEEP_THRESHOLD = 100


@dataclass
class IdempotencyEntry:
    key: str
    result: Any
    created_at: float
    expires_at: float


def _now_ms() -> float:
    return time.time() * 1000


def idempotency_key(*parts: object) -> str:
    """Build a key from the non-empty parts, e.g. ``idem:publish:site-1:42``."""
    content = ":".join(str(p) for p in parts if p not in (None, ""))
    return f"idem:{content}"


class IdempotencyCache:
    """Keyed results with a TTL. Expired entries are ignored on read and swept
    once the map grows past ``sweep_threshold``.

    ``run`` is single-flight per key: while one caller executes ``fn``, other
    callers with the same key wait for it and receive its result. If ``fn``
    raises, nothing is cached and one waiter takes over. The lock only guards
    the maps; ``fn`` runs outside it so slow calls never block other keys.
    """

    def __init__(
        self,
        sweep_threshold: int = _SWEEP_THRESHOLD,
        clock: Callable[[], float] = _now_ms,
    ):
        self._entries: dict[str, IdempotencyEntry] = {}
        self._inflight: dict[str, threading.Event] = {}
        self._lock = threading.Lock()
        self._sweep_threshold = sweep_threshold
        self._clock = clock

    def lookup(self, key: str) -> IdempotencyEntry | None:
        with self._lock:
            return self._live(key)

    def store(self, key: str, result: Any, ttl_ms: float) -> None:
        now = self._clock()
        with self._lock:
            self._entries[key] = IdempotencyEntry(
                key=key, result=result, created_at=now, expires_at=now + ttl_ms
            )
            if len(self._entries) > self._sweep_threshold:
                self._sweep(now)

    def run(self, key: str, fn: Callable[[], T], ttl_ms: float = IDEMPOTENCY_TTL_MS) -> T:
        while True:
            with self._lock:
                cached = self._live(key)
                if cached is not None:
                    logger.debug("Idempotency hit for %s", key)
                    return cached.result
                pending = self._inflight.get(key)
                if pending is None:
                    pending = threading.Event()
                    self._inflight[key] = pending
                    break
            logger.debug("Waiting for in-flight call on %s", key)
            pending.wait()

        try:
            result = fn()
            self.store(key, result, ttl_ms)
            return result
        finally:
            with self._lock:
                self._inflight.pop(key, None)
            pending.set()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _live(self, key: str) -> IdempotencyEntry | None:
        entry = self._entries.get(key)
        if entry and entry.expires_at > self._clock():
            return entry
        return None

    def _sweep(self, now: float) -> None:
        expired = [k for k, v in self._entries.items() if v.expires_at < now]
        for k in expired:
            del self._entries[k]


_default_cache = IdempotencyCache()


def with_idempotency(key: str, fn: Callable[[], T], ttl_ms: float = IDEMPOTENCY_TTL_MS) -> T:
    """Return the cached result for ``key`` if still live, else run ``fn`` and cache it."""
    return _default_cache.run(key, fn, ttl_ms)


def get_idempotency_cache() -> IdempotencyCache:
    return _default_cache
