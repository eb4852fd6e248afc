"""Configuration management for the cricket scoring engine."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    url: str = Field(default="sqlite:///cricket_scoring.db", validation_alias="DB_URL")
    echo: bool = Field(default=False, validation_alias="DB_ECHO")


class ScoringSettings(BaseSettings):
    """Scoring rules that are not fixed by the match format."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    players_per_side: int = Field(default=11, ge=2, validation_alias="PLAYERS_PER_SIDE")
    # Open the next over implicitly instead of raising OverComplete
    auto_advance_overs: bool = Field(default=False, validation_alias="AUTO_ADVANCE_OVERS")
    recent_balls_window: int = Field(default=6, ge=1, validation_alias="RECENT_BALLS_WINDOW")
    persist_events: bool = Field(default=True, validation_alias="PERSIST_EVENTS")


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    file: Optional[str] = Field(default=None, validation_alias="LOG_FILE")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Global settings instance
settings = Settings()
