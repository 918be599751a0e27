"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Care Calendar Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///./care_calendar.db"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "care-calendar"
    default_weeks_to_generate: int = 2
    upcoming_days_ahead: int = 14
    default_max_week_load: int = 150
    streak_lookback_days: int = 30


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
