"""Anthropic messages adapter returning a JSON article."""

from __future__ import annotations

import httpx
from anthropic import Anthropic

from perfector.llm.base import DEFAULT_GENERATION_TIMEOUT, JsonGenerationAdapter
from perfector.reliability.retry import RetryOptions


class AnthropicAdapter(JsonGenerationAdapter):
    provider_id = "anthropic"
    default_model = "claude-3-haiku-20240307"

    def __init__(
        self,
        timeout: float = DEFAULT_GENERATION_TIMEOUT,
        retry: RetryOptions | None = None,
        http_client: httpx.Client | None = None,
    ):
        super().__init__(timeout=timeout, retry=retry)
        self._http_client = http_client

    def complete(self, api_key: str, model: str, prompt: str) -> str:
        client = Anthropic(
            api_key=api_key,
            timeout=self.timeout,
            max_retries=0,
            http_client=self._http_client,
        )
        response = client.messages.create(
            model=model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.content[0].text if response.content else ""
