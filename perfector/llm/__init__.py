"""Generation layer: vendor adapters behind a router that never raises."""

from perfector.llm.anthropic_provider import AnthropicAdapter
from perfector.llm.base import GenerationAdapter, JsonGenerationAdapter, ProviderConfig
from perfector.llm.fallback import FallbackAdapter, generate_fallback_content
from perfector.llm.gemini_provider import GeminiAdapter
from perfector.llm.openai_provider import GroqAdapter, OpenAIAdapter, OpenRouterAdapter
from perfector.llm.router import GenerationRouter
from perfector.llm.validation import ProviderValidationResult, validate_provider_key

__all__ = [
    "AnthropicAdapter",
    "FallbackAdapter",
    "GeminiAdapter",
    "GenerationAdapter",
    "GenerationRouter",
    "GroqAdapter",
    "JsonGenerationAdapter",
    "OpenAIAdapter",
    "OpenRouterAdapter",
    "ProviderConfig",
    "ProviderValidationResult",
    "generate_fallback_content",
    "validate_provider_key",
]
