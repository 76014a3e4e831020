"""Generation adapter protocol and the shared request-reply-normalize flow."""

from __future__ import annotations

import logging
from typing import Protocol

from pydantic import BaseModel

from perfector.jobs.models import ContentResult
from perfector.llm.content import build_generation_prompt, extract_json, normalize_generation
from perfector.reliability.deadline import call_with_deadline
from perfector.reliability.retry import RetryOptions, with_retry

logger = logging.getLogger(__name__)

# Fragments of SDK/httpx messages for timeouts and dropped connections.
TRANSIENT_ERROR_FRAGMENTS: tuple[str, ...] = (
    "Request timed out",
    "Connection error",
    "timed out",
)

DEFAULT_GENERATION_TIMEOUT = 90.0


class ProviderConfig(BaseModel):
    """Which vendor to call, with which credentials and model."""

    provider: str = "gemini"
    api_key: str | None = None
    model: str | None = None


class GenerationAdapter(Protocol):
    """One AI vendor behind a common interface."""

    provider_id: str
    default_model: str

    def generate(self, api_key: str, model: str | None, topic: str) -> ContentResult:
        """Generate an article about ``topic`` and normalize it to ``ContentResult``."""
        ...


class JsonGenerationAdapter:
    """Base for adapters that send one prompt and expect a JSON article back.

    Subclasses implement ``complete``; the vendor call is wrapped in
    ``with_retry`` and each attempt is bounded by ``timeout`` seconds of wall
    clock, however the vendor paces its bytes.
    """

    provider_id = ""
    default_model = ""
    max_tokens = 4096

    def __init__(
        self,
        timeout: float = DEFAULT_GENERATION_TIMEOUT,
        retry: RetryOptions | None = None,
    ):
        self.timeout = timeout
        self.retry = retry or RetryOptions(retryable_errors=TRANSIENT_ERROR_FRAGMENTS)

    def complete(self, api_key: str, model: str, prompt: str) -> str:
        raise NotImplementedError

    def generate(self, api_key: str, model: str | None, topic: str) -> ContentResult:
        model_name = model or self.default_model
        logger.info("[%s] Generating content for %r with model %s", self.provider_id, topic, model_name)
        prompt = build_generation_prompt(topic)
        raw = with_retry(
            lambda: call_with_deadline(lambda: self.complete(api_key, model_name, prompt), self.timeout),
            self.retry,
        )
        parsed = extract_json(raw)
        result = normalize_generation(parsed, topic, provider=self.provider_id, model=model_name)
        logger.info("[%s] Generated %d words", self.provider_id, result.word_count)
        return result
