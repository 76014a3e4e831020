"""Total wall-clock budget for one outbound call.

httpx and the vendor SDKs apply their timeout per connect/read/write phase, so
a server that keeps dripping bytes never trips it. ``call_with_deadline`` runs
the call on a worker thread and stops waiting once the budget is spent.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, TypeVar

from perfector.errors import DeadlineExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")


def call_with_deadline(fn: Callable[[], T], timeout: float | None) -> T:
    """Return ``fn()`` or raise ``DeadlineExceeded`` after ``timeout`` seconds.

    A non-positive or ``None`` timeout calls ``fn`` inline. The worker is not
    interrupted on expiry; callers that can observe the deadline themselves
    (see ``check_deadline``) should do so to release it promptly.
    """
    if not timeout or timeout <= 0:
        return fn()

    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="perfector-deadline")
    try:
        future = pool.submit(fn)
        try:
            return future.result(timeout=timeout)
        except FutureTimeout:
            future.cancel()
            logger.warning("Outbound call exceeded its %.1fs deadline", timeout)
            raise DeadlineExceeded(timeout) from None
    finally:
        pool.shutdown(wait=False)


def check_deadline(deadline: float, timeout: float) -> None:
    """Raise ``DeadlineExceeded`` once ``time.monotonic()`` passes ``deadline``."""
    if time.monotonic() > deadline:
        raise DeadlineExceeded(timeout)
