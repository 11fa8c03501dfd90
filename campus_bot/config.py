"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Campus bot configuration. All values come from environment variables."""

    # Gemini
    gemini_api_key: str = Field(default="")
    gemini_model: str = Field(default="gemini-2.5-flash-preview-09-2025")
    gemini_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta"
    )
    # Web-search tool key, configurable via SEARCH_TOOL (e.g. web_search)
    search_tool: str = Field(default="google_search")
    request_timeout: float = Field(default=60.0)

    # Retry policy for model calls
    retry_max_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0)

    # Database
    database_path: Path = Field(default=Path("data/campus_bot.db"))

    # Turso (hosted libSQL); when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Seconds between polls for changes written by other processes
    store_poll_interval: float = Field(default=2.0, gt=0)

    # Operator
    operator_id: str = Field(default="operator")
    admin_password: str = Field(default="admin123")

    # Knowledge base
    knowledge_path: Path = Field(default=Path("data/campus_data.json"))

    # Calendar day used for "today's events"
    timezone: str = Field(default="UTC")

    # HTTP server
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=8080)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_model_url(self) -> str:
        """Return the generateContent endpoint for the configured model."""
        base = self.gemini_api_base.rstrip("/")
        return f"{base}/models/{self.gemini_model}:generateContent"


settings = Settings()
