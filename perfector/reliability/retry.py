"""Retry with exponential backoff and jitter for transient vendor failures."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import httpx

from perfector.errors import PerfectorError, RateLimitExceeded, RetryableTransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRYABLE_STATUSES: tuple[int, ...] = (408, 429, 500, 502, 503, 504)


@dataclass
class RetryOptions:
    """Backoff policy for ``with_retry``. Delays are in milliseconds."""

    max_retries: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: int = 30000
    backoff_multiplier: float = 2.0
    retryable_statuses: tuple[int, ...] = DEFAULT_RETRYABLE_STATUSES
    retryable_errors: tuple[str, ...] = ()
    on_retry: Callable[[int, Exception, float], None] | None = None


def error_status(err: BaseException) -> int | None:
    """HTTP status carried by an exception, if any.

    Covers our own errors (``status``), vendor SDK errors (``status_code``) and
    ``httpx.HTTPStatusError`` (``response.status_code``).
    """
    if isinstance(err, PerfectorError):
        status = getattr(err, "status", None)
        return status if isinstance(status, int) else None
    for attr in ("status", "status_code"):
        value = getattr(err, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(err, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_retryable(err: BaseException, options: RetryOptions) -> bool:
    if isinstance(err, RateLimitExceeded):
        return False
    message = str(err)
    if any(fragment in message for fragment in options.retryable_errors):
        return True
    status = error_status(err)
    return status is not None and status in options.retryable_statuses


def compute_delay_ms(attempt: int, options: RetryOptions) -> float:
    """Backoff for the given 1-based retry attempt, with 0-30% jitter, capped."""
    base = options.initial_delay_ms * options.backoff_multiplier ** (attempt - 1)
    jitter = random.random() * 0.3 * base
    return min(base + jitter, options.max_delay_ms)


def with_retry(fn: Callable[[], T], options: RetryOptions | None = None) -> T:
    """Call ``fn``; retry retryable failures until the budget is spent.

    The last error is re-raised when it is not retryable or when
    ``max_retries`` retries have already been made.
    """
    opts = options or RetryOptions()
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as e:
            attempt += 1
            if attempt > opts.max_retries or not is_retryable(e, opts):
                raise
            delay_ms = compute_delay_ms(attempt, opts)
            logger.warning(
                "Retry %d/%d in %.0f ms after error: %s",
                attempt, opts.max_retries, delay_ms, str(e)[:200],
            )
            if opts.on_retry:
                opts.on_retry(attempt, e, delay_ms)
            time.sleep(delay_ms / 1000)


def fetch_with_retry(
    client: httpx.Client,
    method: str,
    url: str,
    options: RetryOptions | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Issue an httpx request, retrying responses with a retryable status.

    Non-retryable error responses are returned to the caller unchanged.
    """
    opts = options or RetryOptions()

    def _call() -> httpx.Response:
        response = client.request(method, url, **kwargs)
        if response.status_code in opts.retryable_statuses:
            raise RetryableTransportError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status=response.status_code,
            )
        return response

    return with_retry(_call, opts)
