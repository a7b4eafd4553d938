"""
Application configuration via pydantic-settings.
All config read from environment variables with sensible defaults for local dev.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    # App
    app_name: str = "gensite-recommender"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    debug: bool = False

    # Redis (profile persistence + rate limiting)
    redis_url: str = Field(default="redis://localhost:6379/0")

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "https://www.vitamix.com"]
    )

    # Sentry
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)

    # Rate Limiting
    rate_limit_anon_per_min: int = 30
    rate_limit_llm_per_min: int = 10
    rate_limit_signals_per_min: int = 240

    # Signals
    signals_request_max_bytes: int = 65_536  # 64KB

    # Sessions
    session_ttl_s: int = 7 * 24 * 60 * 60
    session_max_contexts: int = 10_000

    # Anthropic (block reasoning)
    anthropic_api_key: str = ""
    reasoning_model: str = "claude-sonnet-4-6"
    reasoning_timeout_s: float = 8.0
    reasoning_max_tokens: int = 1500

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


settings = Settings()
