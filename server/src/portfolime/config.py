"""Configuration and environment loading for Portfolime."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Local identity gateway
    min_password_length: int = 6

    # Demo data for a freshly claimed portfolio
    seed_sample_projects: bool = False

    # Mounted layouts not looked up for this many seconds are evicted
    layout_idle_timeout: int = 1800

    # GitHub repository import
    github_api_url: str = "https://api.github.com"
    github_timeout: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
