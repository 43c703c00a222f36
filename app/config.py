"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Worker endpoint (scheduler -> worker dispatch)
    WORKER_BASE_URL: str = "http://localhost:8000"
    SERVICE_ROLE_KEY: str = ""
    WORKER_TIMEOUT: float = 120.0

    # Pipeline
    PIPELINE_BATCH_SIZE: int = 20
    MAX_JOB_RETRIES: int = 3
    BACKFILL_LIMIT: int = 1000
    BACKFILL_PRIORITY: int = 10
    DEFAULT_JOB_PRIORITY: int = 0  # Must stay below BACKFILL_PRIORITY

    # AI provider (OpenAI-compatible, OpenRouter by default)
    AI_API_KEY: str = ""
    AI_BASE_URL: str = "https://openrouter.ai/api/v1"
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBED_DIM: int = 1536  # Must match the model's output dimension
    CLASSIFIER_MODEL: str = "openai/gpt-4o-mini"
    SITE_URL: str = ""
    SITE_NAME: str = "CRM-Pipeline"

    # In-process ticker (stand-in for an external cron trigger)
    ENABLE_TICKER: bool = False
    TICK_INTERVAL: int = 30

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


# Global settings instance
settings = Settings()
