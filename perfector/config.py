"""Configuration loaded from environment (.env) and defaults."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the project root .env file regardless of CWD
_THIS_DIR = Path(__file__).resolve().parent          # perfector/
_PROJECT_ROOT = _THIS_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # AI provider: gemini | openai | anthropic | groq | openrouter
    perfector_llm_provider: str = "gemini"

    # Google Gemini
    gemini_api_key: str | None = None
    perfector_gemini_model: str = "gemini-2.0-flash"

    # OpenAI
    openai_api_key: str | None = None
    perfector_openai_model: str = "gpt-4o-mini"

    # Anthropic
    anthropic_api_key: str | None = None
    perfector_anthropic_model: str = "claude-3-haiku-20240307"

    # Groq (OpenAI-compatible)
    groq_api_key: str | None = None
    perfector_groq_model: str = "llama-3.1-8b-instant"

    # OpenRouter (OpenAI-compatible)
    openrouter_api_key: str | None = None
    perfector_openrouter_model: str = "openai/gpt-4o-mini"

    # Hard wall-clock timeouts for outbound calls, in seconds
    perfector_generation_timeout: float = 90.0
    perfector_validation_timeout: float = 8.0

    # Retry policy for vendor calls
    perfector_max_retries: int = 3
    perfector_retry_initial_delay_ms: int = 1000
    perfector_retry_max_delay_ms: int = 30000

    # Artificial pause between pipeline stages (0 disables)
    perfector_stage_delay_ms: int = 0

    # Scoring rubric (weights and thresholds); empty means rubrics/default.yaml
    perfector_rubric_path: str | None = None

    # Rate limit for mutating API routes (fixed window, per client IP)
    perfector_rate_limit_max: int = 30
    perfector_rate_limit_window_ms: int = 60_000

    # CORS origins (comma-separated). Defaults to localhost dev.
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173"

    # Server port
    port: int = 8000

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def rubric_path(self) -> Path | None:
        """Rubric YAML path resolved against the project root, if configured."""
        if not self.perfector_rubric_path:
            return None
        p = Path(self.perfector_rubric_path)
        if not p.is_absolute():
            return (_PROJECT_ROOT / p).resolve()
        return p

    def api_key_for(self, provider: str) -> str | None:
        """Configured API key for a provider id (``google`` is an alias of ``gemini``)."""
        name = provider.lower()
        if name == "google":
            name = "gemini"
        return getattr(self, f"{name}_api_key", None)

    def model_for(self, provider: str) -> str | None:
        """Configured default model for a provider id."""
        name = provider.lower()
        if name == "google":
            name = "gemini"
        return getattr(self, f"perfector_{name}_model", None)


def get_settings() -> Settings:
    return Settings()
