"""Reliability layer: retry with backoff, idempotency, TTL cache, rate limiting."""

from perfector.reliability.cache import TTLCache, cache_delete, cache_get, cache_set, get_cache
from perfector.reliability.deadline import call_with_deadline, check_deadline
from perfector.reliability.idempotency import (
    IdempotencyCache,
    get_idempotency_cache,
    idempotency_key,
    with_idempotency,
)
from perfector.reliability.ratelimit import (
    RateLimiter,
    RateLimitResult,
    check_rate_limit,
    get_rate_limiter,
)
from perfector.reliability.retry import (
    RetryOptions,
    compute_delay_ms,
    error_status,
    fetch_with_retry,
    with_retry,
)

__all__ = [
    "call_with_deadline",
    "check_deadline",
    "IdempotencyCache",
    "RateLimitResult",
    "RateLimiter",
    "RetryOptions",
    "TTLCache",
    "cache_delete",
    "cache_get",
    "cache_set",
    "check_rate_limit",
    "compute_delay_ms",
    "error_status",
    "fetch_with_retry",
    "get_cache",
    "get_idempotency_cache",
    "get_rate_limiter",
    "idempotency_key",
    "with_idempotency",
    "with_retry",
]
