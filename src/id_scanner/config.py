"""Application configuration."""

import os
import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    store_timeout_seconds: float = 10.0
    extraction_backend: str = "canned"
    extraction_timeout_seconds: float = 30.0
    capture_session_ttl_seconds: float = 900.0
    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "high"
    openai_store: bool = False
    export_dir: Path = Path(tempfile.gettempdir()) / "id_scans"
    export_timezone: str = "UTC"
    export_datetime_format: str = "%x %X"
    telegram_bot_token: str | None = None
    telegram_share_chat_id: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def sharing_enabled(settings: Settings) -> bool:
    """Return whether a Telegram share target is fully configured."""
    return bool(
        settings.telegram_bot_token
        and settings.telegram_share_chat_id
        and settings.telegram_share_chat_id.strip()
    )
