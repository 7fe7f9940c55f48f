"""Configuration settings for the transcript collector."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Transcript Collector"
    app_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./transcripts.db"

    # Fellow
    fellow_workspace: str = ""
    fellow_page_size: int = 50
    fellow_min_request_interval_ms: int = 500
    fellow_request_timeout: float = 30.0

    # Download retry policy
    download_max_retries: int = 3
    download_initial_delay_seconds: float = 1.0
    recording_cooldown_hours: int = 2

    # Google Drive
    google_client_id: str = ""
    google_client_secret: str = ""
    google_refresh_token: str = ""
    google_drive_folder_id: str = ""
    google_browser_cookies: str = ""  # "name=value; name2=value2" copied from a signed-in browser
    caption_min_request_interval_ms: int = 500

    # Export
    export_max_filename_length: int = 200

    # Scheduler
    sync_enabled: bool = False
    sync_interval_minutes: int = 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
