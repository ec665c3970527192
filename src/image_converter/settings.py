from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import CONFIG_FILE, AppConfig, load_config

ENV_PREFIX = "IMGCONV_"


class Settings(BaseSettings):
    """Process settings sourced from ``IMGCONV_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)

    config_path: Path = CONFIG_FILE
    encoder_command: str | None = None


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


def resolve_config(config_path: Path | None = None, settings: Settings | None = None) -> AppConfig:
    settings = settings or get_settings()
    config = load_config(config_path or settings.config_path)
    if settings.encoder_command:
        config.external.command = settings.encoder_command
    return config


__all__ = ["ENV_PREFIX", "Settings", "get_settings", "resolve_config"]
