from __future__ import annotations

import logging
import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Final

from pydantic import BaseModel, Field

HISTORY_KEY: Final[str] = "whatsapp_message_history"

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[2]


def _env(name: str, default: str | None = None):
    return lambda: os.getenv(name, default)


class Settings(BaseModel):
    # Database URL for the local message history:
    # - Default for local dev: sqlite file in the project root (wa_sender.db)
    # - Override using the DATABASE_URL env var
    database_url: str = Field(
        default_factory=_env("DATABASE_URL", f"sqlite:///{PROJECT_ROOT / 'wa_sender.db'}")
    )

    # --- WasenderAPI (used by the relay) ---
    wasender_api_base: str = Field(
        default_factory=_env("WASENDER_API_BASE", "https://wasenderapi.com/api")
    )

    # --- Client side ---
    # Credential forwarded inside every relay envelope
    wasender_api_key: str | None = Field(default_factory=_env("WASENDER_API_KEY"))
    relay_url: str = Field(
        default_factory=_env("RELAY_URL", "http://127.0.0.1:8000/whatsapp-sender")
    )

    cors_allow_origin: str = Field(default_factory=_env("CORS_ALLOW_ORIGIN", "*"))
    log_level: str = Field(default_factory=_env("LOG_LEVEL", "INFO"))


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
