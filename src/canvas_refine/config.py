"""
Configuration settings for Canvas Refine.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development.
"""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Canvas Refine"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # === Image API ===
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_API_KEY: Optional[str] = None  # Takes precedence over the stored key file
    IMAGE_MODEL: str = "gpt-image-1.5"
    IMAGE_QUALITY: str = "high"
    IMAGE_SIZE: str = "auto"  # "auto" preserves aspect ratio, falls back to FALLBACK_SIZE
    FALLBACK_SIZE: str = "1024x1024"
    REQUEST_TIMEOUT: int = 180  # seconds, high-quality edits routinely take 60-90s

    # === Retry & Backoff ===
    MAX_ATTEMPTS: int = 5  # Per size candidate
    INITIAL_BACKOFF_MS: int = 1000
    MAX_BACKOFF_MS: int = 16000
    MAX_JITTER_MS: int = 250

    # === Progress ===
    PROGRESS_TICK_MS: int = 150
    ESTIMATED_DURATION_MS: int = 90000

    # === Workspace ===
    WORK_DIR: Path = Path.home() / ".canvas_refine"
    INPUT_FILENAME: str = "input.png"
    OUTPUT_FILENAME: str = "output.png"
    API_KEY_FILENAME: str = "key.txt"
    OUTPUT_LAYER_NAME: str = "Refined Output"

    # === Jobs ===
    JOB_HISTORY_LIMIT: int = 20  # Finished jobs kept in memory for polling

    # === Monitoring ===
    PROMETHEUS_ENABLED: bool = True


# Global settings instance
settings = Settings()
