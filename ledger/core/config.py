"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, PostgresDsn, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROMPT_PATH = Path(__file__).resolve().parent.parent / "prompts" / "editor_template.txt"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============== Environment ==============
    environment: Literal["development", "staging", "production"] = "development"
    app_version: str = "0.1.0"

    # ============== Database ==============
    postgres_user: str = "ledger"
    postgres_password: str = "ledger_dev_password"
    postgres_db: str = "ledger"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    database_url: PostgresDsn | None = None

    @property
    def db_url(self) -> str:
        """Construct database URL from components or use explicit URL."""
        if self.database_url:
            return str(self.database_url)
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def db_url_sync(self) -> str:
        """Synchronous database URL for Alembic migrations."""
        return self.db_url.replace("postgresql+asyncpg://", "postgresql://")

    # ============== Redis ==============
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_url: RedisDsn | None = None

    @property
    def redis_dsn(self) -> str:
        """Construct Redis URL from components or use explicit URL."""
        if self.redis_url:
            return str(self.redis_url)
        return f"redis://{self.redis_host}:{self.redis_port}/0"

    # ============== API ==============
    cors_origins_str: str = Field(default="http://localhost:3000,http://localhost:8000", alias="cors_origins")

    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    # ============== LLM Configuration ==============
    llm_provider: Literal["anthropic", "gemini", "mock"] = "anthropic"
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-3-haiku-20240307"
    google_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    llm_timeout_seconds: float = Field(default=60.0, gt=0)

    # ============== Editor ==============
    editor_enabled: bool = False
    editor_dry_run: bool = False
    editor_max_items: int = Field(default=20, ge=1, le=500)
    editor_min_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    editor_min_entity_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    editor_max_tokens: int = Field(default=2048, ge=256, le=8192)
    editor_duplicate_window: int = Field(default=100, ge=1, le=1000)
    editor_prompt_path: Path = DEFAULT_PROMPT_PATH
    editor_user_id: str = "llm-editor"

    # ============== Snapshots ==============
    snapshot_timeout_seconds: float = Field(default=20.0, gt=0)
    snapshot_max_bytes: int = Field(default=5_000_000, ge=1024)

    # ============== Celery ==============
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None
    celery_task_always_eager: bool = False  # Synchronous execution for testing
    editor_schedule_minutes: int = Field(default=60, ge=1, le=1440)

    @property
    def celery_broker(self) -> str:
        """Get Celery broker URL."""
        return self.celery_broker_url or self.redis_dsn

    @property
    def celery_backend(self) -> str:
        """Get Celery result backend URL."""
        return self.celery_result_backend or self.redis_dsn

    # ============== Logging ==============
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    # ============== Computed Properties ==============
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
