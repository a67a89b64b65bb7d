"""
Centralized configuration management for flashdeck.
"""
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEDUP_RETENTION_SECONDS,
    DEDUP_WINDOW_SECONDS,
    MEDIA_URL_TTL_SECONDS,
    SUBMIT_TIMEOUT_SECONDS,
)


def get_default_data_dir() -> Path:
    """Returns the default directory for flashdeck data files."""
    return Path.home() / ".flashdeck"


class Settings(BaseSettings):
    """
    Defines application settings, loaded from environment variables or .env files.

    Every field can be overridden with a FLASHDECK_-prefixed variable,
    e.g. FLASHDECK_DB_PATH or FLASHDECK_SUBMIT_TIMEOUT_SECONDS.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLASHDECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Core Paths ---
    db_path: Path = get_default_data_dir() / "flashdeck.db"

    # Object store for card images.
    assets_dir: Path = get_default_data_dir() / "assets"

    # --- User Configuration ---
    user_id: str = "local-user"

    # --- Review Engine ---
    submit_timeout_seconds: float = SUBMIT_TIMEOUT_SECONDS
    media_url_ttl_seconds: int = MEDIA_URL_TTL_SECONDS
    dedup_window_seconds: int = DEDUP_WINDOW_SECONDS
    dedup_retention_seconds: int = DEDUP_RETENTION_SECONDS

    # --- Testing Configuration ---
    # Disables the data-loss guard on forced table recreation.
    # Should NEVER be enabled in production.
    testing_mode: bool = False


settings = Settings()
