"""
Application Configuration

Environment-based settings for the milestone service.
"""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from the environment or a local .env file."""

    app_name: str = "Milestone Service"

    # Database
    database_url: str = "sqlite:///./milestones.db"
    sql_echo: bool = False

    # Logging
    log_level: str = "INFO"

    # Run the timeline invariant checks before every commit
    enforce_invariants: bool = True

    # Event bus
    milestone_updated_event: str = "milestone.updated"

    # Response envelope version
    api_version: str = "v5"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()


settings = get_settings()
