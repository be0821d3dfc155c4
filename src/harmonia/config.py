"""Configuration management for Harmonia."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from harmonia.logging_utils import LogProfile, configure_logging


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="HARMONIA_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # LLM Configuration
    model: str = Field(default="openrouter:openai/gpt-4o-mini", description="Model identifier passed to republic")
    api_key: Optional[str] = Field(None, description="API key for the LLM provider")
    api_base: Optional[str] = Field(None, description="Optional API base URL")
    max_tokens: int = Field(default=1024, description="Maximum tokens for chat completions")

    # Validation Configuration
    schema_path: Optional[Path] = Field(None, description="Envelope schema file or folder; bundled schema when unset")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_profile: LogProfile = Field(default="default", description="Log profile (default or cli)")


def get_settings(**overrides) -> Settings:
    """Get application settings.

    Args:
        overrides: Field values taking precedence over the environment

    Returns:
        Settings instance
    """
    settings = Settings(**overrides)

    configure_logging(profile=settings.log_profile, level=settings.log_level)

    return settings
