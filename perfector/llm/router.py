"""Provider-agnostic generation router.

``GenerationRouter.generate`` never raises: without an API key it goes
straight to the fallback adapter, and any adapter failure (auth, HTTP status,
timeout, malformed reply) is logged and replaced by fallback content. A job
therefore never fails because an AI vendor is unreachable.
"""

from __future__ import annotations

import logging

from perfector.config import Settings
from perfector.jobs.models import ContentResult
from perfector.llm.anthropic_provider import AnthropicAdapter
from perfector.llm.base import DEFAULT_GENERATION_TIMEOUT, GenerationAdapter, ProviderConfig
from perfector.llm.fallback import FallbackAdapter, generate_fallback_content
from perfector.llm.gemini_provider import GeminiAdapter
from perfector.llm.openai_provider import GroqAdapter, OpenAIAdapter, OpenRouterAdapter
from perfector.reliability.retry import RetryOptions

logger = logging.getLogger(__name__)

PROVIDER_ALIASES = {"google": "gemini"}


def default_adapters(
    timeout: float = DEFAULT_GENERATION_TIMEOUT,
    retry: RetryOptions | None = None,
) -> dict[str, GenerationAdapter]:
    adapters: list[GenerationAdapter] = [
        GeminiAdapter(timeout=timeout, retry=retry),
        OpenAIAdapter(timeout=timeout, retry=retry),
        AnthropicAdapter(timeout=timeout, retry=retry),
        GroqAdapter(timeout=timeout, retry=retry),
        OpenRouterAdapter(timeout=timeout, retry=retry),
    ]
    return {a.provider_id: a for a in adapters}


class GenerationRouter:
    """Dispatches to one adapter per provider id, with a local fallback."""

    def __init__(
        self,
        adapters: dict[str, GenerationAdapter] | None = None,
        fallback: GenerationAdapter | None = None,
    ):
        if adapters is None:
            adapters = default_adapters()
        self._adapters = {k.lower(): v for k, v in adapters.items()}
        self._fallback = fallback or FallbackAdapter()

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationRouter":
        retry = RetryOptions(
            max_retries=settings.perfector_max_retries,
            initial_delay_ms=settings.perfector_retry_initial_delay_ms,
            max_delay_ms=settings.perfector_retry_max_delay_ms,
            retryable_errors=("Request timed out", "Connection error", "timed out"),
        )
        return cls(default_adapters(timeout=settings.perfector_generation_timeout, retry=retry))

    @property
    def providers(self) -> list[str]:
        return sorted(self._adapters)

    def register(self, adapter: GenerationAdapter) -> None:
        self._adapters[adapter.provider_id.lower()] = adapter

    def resolve(self, provider: str | None) -> GenerationAdapter:
        """Adapter for ``provider`` (case-insensitive); fallback for unknown ids."""
        name = (provider or "").strip().lower()
        name = PROVIDER_ALIASES.get(name, name)
        adapter = self._adapters.get(name)
        if adapter is None:
            logger.warning("Unknown AI provider %r, using fallback adapter", provider)
            return self._fallback
        return adapter

    def generate(self, config: ProviderConfig, topic: str) -> ContentResult:
        logger.info(
            "AI generation: provider=%s model=%s has_key=%s topic=%r",
            config.provider, config.model, bool(config.api_key), topic,
        )
        if not config.api_key:
            logger.warning("No API key provided for %s; using fallback content", config.provider)
            return self._safe_fallback(topic)

        adapter = self.resolve(config.provider)
        try:
            return adapter.generate(config.api_key, config.model, topic)
        except Exception as e:
            logger.error(
                "AI generation failed (%s): %s; falling back to placeholder content",
                adapter.provider_id, str(e)[:300],
            )
            return self._safe_fallback(topic)

    def _safe_fallback(self, topic: str) -> ContentResult:
        try:
            return self._fallback.generate(None, None, topic)
        except Exception:
            logger.exception("Fallback adapter failed; using built-in template")
            return generate_fallback_content(topic)
