"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1"
    use_mock: bool = False

    # Debug flags
    debug: bool = False

    # Browser origins allowed to call the API
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Client-side polling
    poll_interval_seconds: float = 2.0
    poll_timeout_seconds: float | None = 120.0

    # Background job dispatch
    dispatch_max_attempts: int = 3
    dispatch_retry_delay_seconds: float = 1.0
    dispatch_max_concurrency: int = 5

    # Attachment preparation
    pdf_dpi: int = 200
    max_pdf_pages: int = 10
    remote_fetch_timeout_seconds: float = 30.0

    model_config = SettingsConfigDict(
        # Load from .env file in the package directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()
