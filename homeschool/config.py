"""
Configuration management for the homeschool scheduling service.
"""
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, overridable with HOMESCHOOL_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HOMESCHOOL_",
        env_file=".env",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Homeschool Scheduling Service"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    reload: bool = False

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Available-slot defaults
    slot_start_hour: int = 8
    slot_end_hour: int = 17
    slot_duration_minutes: int = 60

    # Upper bound on any date-range query (a school year plus slack)
    max_calendar_range_days: int = 400

    # Load demo blocked time and lessons for this organization at startup
    seed_organization_id: str | None = None


settings = Settings()
