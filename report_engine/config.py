"""Application configuration using Pydantic Settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./report_engine.db"

    # Fast cache (in-process cache when unset)
    REDIS_URL: Optional[str] = None

    # AI provider (OpenAI-compatible chat completions, OpenRouter by default)
    AI_API_KEY: str = ""
    AI_BASE_URL: str = "https://openrouter.ai/api/v1"
    SITE_URL: str = ""
    SITE_NAME: str = "Report Engine"
    SIMPLE_REPORT_MODEL: str = "anthropic/claude-sonnet-4.5"
    COMPLEX_REPORT_MODEL: str = "anthropic/claude-opus-4.5"
    AI_TIMEOUT_SECONDS: int = 600
    AI_MAX_TOKENS: int = 8096
    AI_TEMPERATURE: float = 0.7
    AI_STREAM: bool = True
    AI_RETRY_DELAY_SECONDS: float = 2.0
    SYSTEM_PROMPT: str = (
        "You are an expert career analyst. Provide realistic, actionable career guidance "
        "based on AI displacement research. Always respond with valid JSON matching the "
        "exact structure requested. Be concise and specific - quality over quantity."
    )

    # Retention
    REPORT_KEEP_COUNT: int = 5
    REPORT_ARCHIVE_CAP: int = 20  # 0 disables pruning

    # Worker
    WORKER_POLL_INTERVAL: int = 5
    PROCESSING_STALE_SECONDS: int = 1800
    RUN_EMBEDDED_WORKER: bool = False

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


# Global settings instance
settings = Settings()
