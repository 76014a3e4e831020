"""OpenAI chat-completions adapter; also serves Groq and OpenRouter, which
expose OpenAI-compatible endpoints."""

from __future__ import annotations

import httpx
from openai import OpenAI

from perfector.llm.base import DEFAULT_GENERATION_TIMEOUT, JsonGenerationAdapter
from perfector.reliability.retry import RetryOptions

SYSTEM_PROMPT = "You are an expert SEO content writer. Always respond with valid JSON only, no markdown."


class OpenAIAdapter(JsonGenerationAdapter):
    """OpenAI chat completion returning a JSON article."""

    provider_id = "openai"
    default_model = "gpt-4o-mini"
    base_url: str | None = None
    extra_headers: dict[str, str] = {}

    def __init__(
        self,
        timeout: float = DEFAULT_GENERATION_TIMEOUT,
        retry: RetryOptions | None = None,
        http_client: httpx.Client | None = None,
    ):
        super().__init__(timeout=timeout, retry=retry)
        self._http_client = http_client

    def _client(self, api_key: str) -> OpenAI:
        # SDK retries are off: with_retry owns the backoff policy.
        return OpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=0,
            default_headers=self.extra_headers or None,
            http_client=self._http_client,
        )

    def complete(self, api_key: str, model: str, prompt: str) -> str:
        response = self._client(api_key).chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0.7,
            max_tokens=self.max_tokens,
        )
        msg = response.choices[0].message if response.choices else None
        return (msg.content if msg else "") or ""


class GroqAdapter(OpenAIAdapter):
    provider_id = "groq"
    default_model = "llama-3.1-8b-instant"
    base_url = "https://api.groq.com/openai/v1"


class OpenRouterAdapter(OpenAIAdapter):
    provider_id = "openrouter"
    default_model = "openai/gpt-4o-mini"
    base_url = "https://openrouter.ai/api/v1"
    extra_headers = {"X-Title": "Page Perfector"}
