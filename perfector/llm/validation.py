"""API-key validation: a one-token request against each vendor's endpoint."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx
from pydantic import BaseModel

from perfector.errors import DeadlineExceeded, RetryableTransportError
from perfector.reliability.cache import cache_get, cache_set
from perfector.reliability.deadline import call_with_deadline
from perfector.reliability.retry import RetryOptions, fetch_with_retry

logger = logging.getLogger(__name__)

VALIDATION_TIMEOUT = 8.0
VALIDATION_CACHE_TTL_MS = 5 * 60 * 1000

# 429 is an answer here (the key works but is over quota), so it is not retried.
VALIDATION_RETRY = RetryOptions(
    max_retries=2,
    initial_delay_ms=250,
    max_delay_ms=1000,
    retryable_statuses=(408, 500, 502, 503, 504),
)


class ProviderValidationResult(BaseModel):
    success: bool
    message: str
    provider: str
    model: str
    model_id: str | None = None
    error: str | None = None
    error_code: str | None = None


@dataclass
class _CheckSpec:
    name: str
    endpoint: str
    build: Callable[[str, str], tuple[dict[str, str], dict[str, Any]]]


def _bearer_chat(api_key: str, model: str) -> tuple[dict[str, str], dict[str, Any]]:
    headers = {"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"}
    body = {"model": model, "messages": [{"role": "user", "content": "Hi"}], "max_tokens": 1}
    return headers, body


def _gemini(api_key: str, model: str) -> tuple[dict[str, str], dict[str, Any]]:
    headers = {"Content-Type": "application/json", "x-goog-api-key": api_key}
    body = {"contents": [{"parts": [{"text": "Hi"}]}], "generationConfig": {"maxOutputTokens": 1}}
    return headers, body


def _anthropic(api_key: str, model: str) -> tuple[dict[str, str], dict[str, Any]]:
    headers = {
        "Content-Type": "application/json",
        "x-api-key": api_key,
        "anthropic-version": "2023-06-01",
    }
    body = {"model": model, "messages": [{"role": "user", "content": "Hi"}], "max_tokens": 1}
    return headers, body


KEY_CHECKS: dict[str, _CheckSpec] = {
    "gemini": _CheckSpec(
        "Google AI",
        "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent",
        _gemini,
    ),
    "openai": _CheckSpec("OpenAI", "https://api.openai.com/v1/chat/completions", _bearer_chat),
    "anthropic": _CheckSpec("Anthropic", "https://api.anthropic.com/v1/messages", _anthropic),
    "groq": _CheckSpec("Groq", "https://api.groq.com/openai/v1/chat/completions", _bearer_chat),
    "openrouter": _CheckSpec(
        "OpenRouter", "https://openrouter.ai/api/v1/chat/completions", _bearer_chat
    ),
}


def _cache_key(provider: str, model: str, api_key: str) -> str:
    digest = hashlib.sha256(f"{provider}|{model}|{api_key}".encode()).hexdigest()[:32]
    return f"provider-validation:{digest}"


def _error_for_status(status: int, model: str, payload: Any) -> tuple[str, str]:
    if status in (401, 403):
        return "Invalid API key or insufficient permissions", "INVALID_API_KEY"
    if status == 404:
        return f"Model '{model}' not found or not accessible", "MODEL_NOT_FOUND"
    if status == 429:
        return "Rate limited. API key is valid but quota exceeded.", "RATE_LIMITED"
    message = "API validation failed"
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict) and err.get("message"):
            message = str(err["message"])
        elif payload.get("message"):
            message = str(payload["message"])
    return message, "API_ERROR"


def validate_provider_key(
    provider: str,
    api_key: str,
    model: str,
    timeout: float = VALIDATION_TIMEOUT,
    transport: httpx.BaseTransport | None = None,
    use_cache: bool = True,
    retry: RetryOptions | None = None,
) -> ProviderValidationResult:
    """Check ``provider`` with a 1-token request. Never raises for vendor errors.

    Transient 5xx/408 replies are retried briefly and the whole check is held
    to ``timeout`` seconds of wall clock. Successful and failed outcomes are
    cached for five minutes so repeated form submissions do not hit the
    vendor again.
    """
    provider_id = (provider or "").strip().lower()
    if provider_id == "google":
        provider_id = "gemini"

    if not provider_id or not api_key or not model:
        return ProviderValidationResult(
            success=False,
            message="Missing required fields",
            provider=provider or "unknown",
            model=model or "unknown",
            error="Please provide provider, apiKey, and model",
            error_code="MISSING_FIELDS",
        )

    target = KEY_CHECKS.get(provider_id)
    if target is None:
        return ProviderValidationResult(
            success=False,
            message="Unsupported AI provider",
            provider=provider,
            model=model,
            error=f"Provider '{provider}' is not supported",
            error_code="UNSUPPORTED_PROVIDER",
        )

    key = _cache_key(provider_id, model, api_key)
    if use_cache:
        cached = cache_get(key)
        if cached is not None:
            return cached

    headers, body = target.build(api_key, model)
    url = target.endpoint.replace("{model}", model)
    logger.info("[AI Validation] Validating %s with model %s", provider_id, model)

    def _send() -> httpx.Response:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            return fetch_with_retry(
                client, "POST", url, retry or VALIDATION_RETRY, headers=headers, json=body
            )

    try:
        response = call_with_deadline(_send, timeout)
    except (httpx.TimeoutException, DeadlineExceeded):
        logger.info("[AI Validation] Request timed out for %s", provider_id)
        return ProviderValidationResult(
            success=False,
            message="Request timed out",
            provider=target.name,
            model=model,
            error="The API request timed out. Please try again.",
            error_code="TIMEOUT",
        )
    except RetryableTransportError as e:
        logger.info("[AI Validation] %s still failing after retries: %s", provider_id, e.status)
        response = None
        status, payload = e.status, None
    except httpx.HTTPError as e:
        return ProviderValidationResult(
            success=False,
            message="Validation failed",
            provider=target.name,
            model=model,
            error=str(e)[:200],
            error_code="UNKNOWN_ERROR",
        )

    if response is not None:
        status = response.status_code
        try:
            payload = response.json()
        except ValueError:
            payload = None

    if status >= 400:
        message, code = _error_for_status(status, model, payload)
        result = ProviderValidationResult(
            success=False,
            message=message,
            provider=target.name,
            model=model,
            error=message,
            error_code=code,
        )
    else:
        model_id = payload.get("model", model) if isinstance(payload, dict) else model
        result = ProviderValidationResult(
            success=True,
            message=f"{target.name} API key validated successfully",
            provider=target.name,
            model=model,
            model_id=model_id,
        )
        logger.info("[AI Validation] Success for %s/%s", provider_id, model)

    if use_cache:
        cache_set(key, result, VALIDATION_CACHE_TTL_MS)
    return result
