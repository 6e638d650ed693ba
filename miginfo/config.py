import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from miginfo.models.migration import MigrationVersion


class Settings(BaseSettings):
    """Application settings loaded from environment variables (MIGINFO_*)."""

    # Database
    database_url: str = "sqlite:///data/miginfo.db"

    # Baseline
    baseline_version: str = "1"
    baseline_description: str = "<< Baseline >>"

    # Info / migrate
    target_version: str = ""  # empty = latest
    out_of_order: bool = False

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="MIGINFO_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("baseline_version", "target_version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        if value:
            MigrationVersion(value)
        return value


def get_settings() -> Settings:
    return Settings()
