"""Tests for AI provider key validation."""

import time

import httpx
import pytest

from perfector.llm.validation import validate_provider_key
from perfector.reliability.retry import RetryOptions

FAST_RETRY = RetryOptions(
    max_retries=2, initial_delay_ms=1, max_delay_ms=2, retryable_statuses=(500, 502, 503, 504)
)


def _transport(status, payload=None, calls=None):
    def handler(request):
        if calls is not None:
            calls.append(request)
        return httpx.Response(status, json=payload if payload is not None else {})
    return httpx.MockTransport(handler)


def test_missing_fields():
    result = validate_provider_key("openai", "", "gpt-4o-mini")
    assert result.success is False
    assert result.error_code == "MISSING_FIELDS"


def test_unsupported_provider():
    result = validate_provider_key("mystery", "k", "m")
    assert result.error_code == "UNSUPPORTED_PROVIDER"


def test_success_reports_model_id():
    calls = []
    result = validate_provider_key(
        "openai", "k", "gpt-4o-mini",
        transport=_transport(200, {"model": "gpt-4o-mini-2024-07-18"}, calls),
    )
    assert result.success is True
    assert result.provider == "OpenAI"
    assert result.model_id == "gpt-4o-mini-2024-07-18"
    body = calls[0].content
    assert b'"max_tokens":1' in body.replace(b" ", b"")
    assert calls[0].headers["authorization"] == "Bearer k"


@pytest.mark.parametrize("status,code", [
    (401, "INVALID_API_KEY"),
    (403, "INVALID_API_KEY"),
    (404, "MODEL_NOT_FOUND"),
    (429, "RATE_LIMITED"),
    (500, "API_ERROR"),
])
def test_error_status_mapping(status, code):
    result = validate_provider_key(
        "anthropic", "k", "claude-3-haiku-20240307", transport=_transport(status), retry=FAST_RETRY
    )
    assert result.success is False
    assert result.error_code == code


def test_vendor_error_message_is_surfaced():
    result = validate_provider_key(
        "groq", "k", "m", transport=_transport(400, {"error": {"message": "bad model"}})
    )
    assert result.error == "bad model"


def test_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    result = validate_provider_key("gemini", "k", "gemini-2.0-flash", transport=httpx.MockTransport(handler))
    assert result.error_code == "TIMEOUT"


def test_google_alias_uses_gemini_endpoint():
    calls = []
    validate_provider_key("google", "k", "gemini-2.0-flash", transport=_transport(200, {}, calls))
    assert "generativelanguage.googleapis.com" in str(calls[0].url)
    assert calls[0].headers["x-goog-api-key"] == "k"


def test_results_are_cached():
    calls = []
    transport = _transport(401, {}, calls)
    first = validate_provider_key("openai", "k", "m", transport=transport)
    second = validate_provider_key("openai", "k", "m", transport=transport)
    assert first == second
    assert len(calls) == 1


def test_cache_can_be_bypassed():
    calls = []
    transport = _transport(200, {}, calls)
    validate_provider_key("openai", "k", "m", transport=transport, use_cache=False)
    validate_provider_key("openai", "k", "m", transport=transport, use_cache=False)
    assert len(calls) == 2


def test_transient_status_is_retried():
    statuses = iter([503, 502, 200])
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(next(statuses), json={"model": "gpt-4o-mini"})

    result = validate_provider_key(
        "openai", "k", "gpt-4o-mini", transport=httpx.MockTransport(handler), retry=FAST_RETRY
    )
    assert result.success is True
    assert len(calls) == 3


def test_persistent_server_error_maps_to_api_error():
    calls = []
    result = validate_provider_key(
        "openai", "k", "m", transport=_transport(503, {}, calls), retry=FAST_RETRY
    )
    assert result.error_code == "API_ERROR"
    assert len(calls) == 3


def test_quota_reply_is_not_retried():
    calls = []
    result = validate_provider_key("openai", "k", "m", transport=_transport(429, {}, calls))
    assert result.error_code == "RATE_LIMITED"
    assert len(calls) == 1


def test_dripping_reply_times_out_on_wall_clock():
    def drip():
        for _ in range(20):
            time.sleep(0.1)
            yield b" "

    def handler(request):
        return httpx.Response(200, content=drip())

    started = time.monotonic()
    result = validate_provider_key(
        "openai", "k", "m", timeout=0.3, transport=httpx.MockTransport(handler)
    )
    assert result.error_code == "TIMEOUT"
    assert time.monotonic() - started < 2.0
