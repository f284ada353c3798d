"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from ``AGENTCHAIN_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="AGENTCHAIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "agentchain"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", pattern="^(development|staging|production)$")
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_json: bool = False

    # Task ledger; None keeps tasks in memory only
    ledger_path: Path | None = Path(".agentchain/tasks.json")

    # Agent invocation
    invoke_timeout_seconds: float | None = Field(default=None, gt=0)
    invoke_max_retries: int = Field(default=0, ge=0)
    invoke_retry_base_delay: float = Field(default=1.0, ge=0)
    invoke_retry_max_delay: float = Field(default=30.0, ge=0)

    # Simulated agents
    simulated_latency_seconds: float = Field(default=0.0, ge=0)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""
    return Settings()
