"""Configuration management for markswitch."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration via environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Caption paragraphs (^^^text^^^)
    caption_marker: str = Field(
        default="^^^",
        min_length=1,
        alias="MARKSWITCH_CAPTION_MARKER",
    )
    caption_style: str = Field(
        default="caption",
        alias="MARKSWITCH_CAPTION_STYLE",
    )
    hidden_marker_style: str = Field(
        default="hidden-marker",
        alias="MARKSWITCH_HIDDEN_STYLE",
    )

    # Parser grammar
    relaxed_bold: bool = Field(
        default=True,
        alias="MARKSWITCH_RELAXED_BOLD",
    )
    native_task_lists: bool = Field(
        default=True,
        alias="MARKSWITCH_NATIVE_TASKS",
    )

    log_level: str = Field(
        default="WARNING",
        alias="MARKSWITCH_LOG_LEVEL",
    )


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance, creating it if needed."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Load settings from an optional specific .env file."""
    global _settings
    if env_file:
        _settings = Settings(_env_file=env_file)
    else:
        _settings = Settings()
    return _settings
