"""Error taxonomy shared by the job registry, reliability layer and API."""

from __future__ import annotations

from typing import Any


class PerfectorError(Exception):
    """Base error carrying a machine-readable code and an HTTP status."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return {"success": False, "error": body}


class ValidationError(PerfectorError):
    """Malformed caller input (missing or invalid URL, missing fields)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class JobNotFoundError(PerfectorError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}", {"job_id": job_id})
        self.job_id = job_id


class InvalidTransitionError(PerfectorError):
    """A job state change that would move backwards through the stage order."""

    code = "INVALID_TRANSITION"
    status_code = 409


class ProviderError(PerfectorError):
    """Failure talking to an AI vendor. Absorbed by the generation router."""

    code = "PROVIDER_ERROR"
    status_code = 502

    def __init__(self, message: str, provider: str = "", status: int | None = None):
        super().__init__(message, {"provider": provider, "status": status})
        self.provider = provider
        self.status = status


class RetryableTransportError(PerfectorError):
    """HTTP response whose status is eligible for retry (408/429/5xx)."""

    code = "TRANSPORT_ERROR"
    status_code = 503

    def __init__(self, message: str, status: int):
        super().__init__(message, {"status": status})
        self.status = status


class RateLimitExceeded(PerfectorError):
    code = "RATE_LIMITED"
    status_code = 429

    def __init__(self, retry_after_ms: int):
        super().__init__(
            "Rate limit exceeded. Try again later.",
            {"retry_after_ms": retry_after_ms},
        )
        self.retry_after_ms = retry_after_ms


class DeadlineExceeded(PerfectorError):
    """An outbound call ran past its total wall-clock budget."""

    code = "TIMEOUT"
    status_code = 504

    def __init__(self, timeout: float):
        super().__init__(f"Request timed out after {timeout:g}s", {"timeout": timeout})
        self.timeout = timeout
