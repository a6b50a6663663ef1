from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel


def _keywords(env_name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(env_name, default)
    return tuple(word for word in (part.strip() for part in raw.split(",")) if word)


class Settings(BaseModel):
    # Project root (repo root in local dev, /app in Docker)
    project_root: Path = Path(__file__).resolve().parents[2]

    # Database URL:
    # - Default for local dev: sqlite file in the project root (sms_relay.db)
    # - Override in Docker / production using the DATABASE_URL env var
    database_url: str = os.getenv(
        "DATABASE_URL",
        f"sqlite:///{(Path(__file__).resolve().parents[2] / 'sms_relay.db')}",
    )

    # Brand used in the confirmation replies
    service_name: str = os.getenv("SERVICE_NAME", "LEANA alerts")

    # Comma-separated command words, matched exactly after strip + casefold
    subscribe_keywords: tuple[str, ...] = _keywords("SUBSCRIBE_KEYWORDS", "start")
    unsubscribe_keywords: tuple[str, ...] = _keywords("UNSUBSCRIBE_KEYWORDS", "stop")

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Token for the /admin endpoints (unset means admin endpoints refuse access)
    admin_token: str | None = os.getenv("ADMIN_TOKEN")

    # --- Twilio settings for outbound broadcast SMS ---
    twilio_account_sid: str | None = os.getenv("TWILIO_ACCOUNT_SID")
    twilio_auth_token: str | None = os.getenv("TWILIO_AUTH_TOKEN")
    twilio_from_number: str | None = os.getenv("TWILIO_FROM_NUMBER")
    twilio_messaging_service_sid: str | None = os.getenv("TWILIO_MESSAGING_SERVICE_SID")


@lru_cache
def get_settings() -> Settings:
    return Settings()
