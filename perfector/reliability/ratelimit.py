"""Fixed-window rate limiter keyed by caller."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

_SWEEP_THRESHOLD = 1000


@dataclass
class RateLimitEntry:
    count: int
    window_start: float


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float  # epoch ms
    retry_after_ms: float | None = None


def _now_ms() -> float:
    return time.time() * 1000


class RateLimiter:
    """Counts requests per key in fixed windows.

    The window resets wholesale once ``window_ms`` has elapsed since its
    start; this is not a sliding window. Once more than ``sweep_threshold``
    keys are tracked, ``check`` drops the ones whose window has ended.
    """

    def __init__(
        self,
        sweep_threshold: int = _SWEEP_THRESHOLD,
        clock: Callable[[], float] = _now_ms,
    ):
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._sweep_threshold = sweep_threshold
        self._clock = clock

    def check(self, key: str, max_requests: int, window_ms: float) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now - entry.window_start >= window_ms:
                if entry is None and len(self._entries) >= self._sweep_threshold:
                    self._drop_stale(now, window_ms)
                self._entries[key] = RateLimitEntry(count=1, window_start=now)
                return RateLimitResult(
                    allowed=True,
                    remaining=max_requests - 1,
                    reset_at=now + window_ms,
                )

            reset_at = entry.window_start + window_ms
            if entry.count >= max_requests:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=reset_at,
                    retry_after_ms=reset_at - now,
                )

            entry.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=max_requests - entry.count,
                reset_at=reset_at,
            )

    def sweep(self, window_ms: float) -> int:
        """Drop entries whose window has ended. Returns the number removed."""
        with self._lock:
            return self._drop_stale(self._clock(), window_ms)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _drop_stale(self, now: float, window_ms: float) -> int:
        stale = [k for k, v in self._entries.items() if now - v.window_start >= window_ms]
        for k in stale:
            del self._entries[k]
        if stale:
            logger.debug("Swept %d expired rate-limit windows", len(stale))
        return len(stale)


_default_limiter = RateLimiter()


def check_rate_limit(key: str, max_requests: int, window_ms: float) -> RateLimitResult:
    return _default_limiter.check(key, max_requests, window_ms)


def get_rate_limiter() -> RateLimiter:
    return _default_limiter
