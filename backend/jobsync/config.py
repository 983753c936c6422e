"""
Centralized configuration using Pydantic Settings.

All environment variables are loaded and validated here.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./jobsync.db"

    # Google OAuth client (used to exchange refresh tokens)
    google_client_id: str = ""
    google_client_secret: str = ""
    google_token_uri: str = "https://oauth2.googleapis.com/token"

    # Gmail search
    gmail_query: str = (
        'category:primary newer_than:90d (applied OR application OR interview OR assessment '
        'OR "coding test" OR recruiter OR "job opportunity" OR "position" OR "role")'
    )
    gmail_max_results: int = 200
    gmail_fetch_limit: int = 50  # Per-message fetches per run (rate limiting)
    gmail_metadata_headers: list[str] = ["From", "Subject", "Date", "To"]

    # Records
    snippet_max_length: int = 500
    # "overwrite" keeps the latest classification, "forward_only" never moves a status back
    status_policy: str = "overwrite"

    # HTTP
    cors_origins: list[str] = ["http://localhost:3000"]

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# Global settings instance
settings = get_settings()
