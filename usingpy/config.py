"""Configuration loaded from ``USINGPY_*`` environment variables."""

from __future__ import annotations
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings.

    Example:
        ```
        USINGPY_LOG_LEVEL=debug USINGPY_LOG_JSON=1 python app.py
        ```
    """

    model_config = SettingsConfigDict(
        env_prefix="USINGPY_",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARN", "ERROR"] = "WARN"
    log_json: bool = False
    logger_name: str = "usingpy"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            return "WARN" if v == "WARNING" else v
        return v


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings (for tests)."""
    global _settings
    _settings = None
