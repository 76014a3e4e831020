"""Google Gemini adapter over the REST ``generateContent`` endpoint."""

from __future__ import annotations

import json
import logging
import time

import httpx

from perfector.errors import ProviderError, RetryableTransportError
from perfector.llm.base import DEFAULT_GENERATION_TIMEOUT, JsonGenerationAdapter
from perfector.reliability.deadline import check_deadline
from perfector.reliability.retry import RetryOptions

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiAdapter(JsonGenerationAdapter):
    provider_id = "gemini"
    default_model = "gemini-2.0-flash"

    def __init__(
        self,
        timeout: float = DEFAULT_GENERATION_TIMEOUT,
        retry: RetryOptions | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(timeout=timeout, retry=retry)
        self._transport = transport

    def complete(self, api_key: str, model: str, prompt: str) -> str:
        url = f"{GEMINI_BASE_URL}/models/{model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 0.7, "maxOutputTokens": 8192, "topP": 0.9},
        }
        deadline = time.monotonic() + self.timeout
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            with client.stream(
                "POST",
                url,
                headers={"Content-Type": "application/json", "x-goog-api-key": api_key},
                json=body,
            ) as response:
                chunks = []
                for chunk in response.iter_bytes():
                    check_deadline(deadline, self.timeout)
                    chunks.append(chunk)
        raw = b"".join(chunks).decode("utf-8", errors="replace")

        if response.status_code in self.retry.retryable_statuses:
            raise RetryableTransportError(
                f"Gemini API error: {response.status_code}", status=response.status_code
            )
        if response.status_code >= 400:
            logger.error("[Gemini] API error %d: %s", response.status_code, raw[:200])
            raise ProviderError(
                f"Gemini API error: {response.status_code} - {raw[:200]}",
                provider=self.provider_id,
                status=response.status_code,
            )
        try:
            text = json.loads(raw)["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError):
            text = ""
        if not text:
            raise ProviderError("Empty response from Gemini API", provider=self.provider_id)
        return text
