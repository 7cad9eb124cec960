"""Application configuration

Loaded once from environment variables (or `.env`) on first `get_settings()`.
The Gemini key is read from `GEMINI_API_KEY`, `API_KEY` is accepted as well.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from urlqa.models.model_config import DEFAULT_MODEL, MAX_FILES, MAX_URLS


class Settings(BaseSettings):
    """Settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
        protected_namespaces=(),
    )

    # Gemini
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
    )
    model_name: str = DEFAULT_MODEL

    # Knowledge base limits per group
    max_urls: int = MAX_URLS
    max_files: int = MAX_FILES

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    log_dir: str = "logs"

    # Connectivity probe at startup and every `interval` seconds; 0 disables it
    connectivity_check_url: str = "https://generativelanguage.googleapis.com"
    connectivity_check_interval: float = 30.0

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key.strip())


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get cached settings, loading them on first use"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop cached settings (tests, reconfiguration)"""
    global _settings
    _settings = None
