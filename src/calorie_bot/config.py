"""Application configuration."""

import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Bot settings read from the process environment and `.env` files."""

    telegram_bot_token: str
    telegram_allowed_user_ids: str | None = None
    supabase_url: str
    supabase_service_key: str
    admin_token: str
    openai_api_key: str
    openai_base_url: str | None = None
    openai_model_text: str = "gpt-4o-mini"
    openai_model_vision: str = "gpt-4o"
    timezone: str = "UTC"
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.strip().upper()


def parse_allowed_user_ids(raw: str | None) -> set[int] | None:
    """Return the Telegram ids allowed to use the bot.

    ``None`` means everyone: an unset value, an empty string and ``*`` all open
    the bot up. Entries that are not numeric are ignored.
    """
    if raw is None or raw.strip() in {"", "*"}:
        return None
    ids = {int(part) for part in map(str.strip, raw.split(",")) if part.isdigit()}
    return ids or None
