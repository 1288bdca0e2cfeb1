"""Application settings.

Settings are read from environment variables, after loading a ``.env`` file
from the working directory if one is present.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DATABASE_URL = "sqlite:///fleet_ledger.sqlite3"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    advisor_timeout: float = 30.0
    log_level: str = "WARNING"
    secret_key: str = "dev-secret-key"


def load_settings() -> Settings:
    """Build :class:`Settings` from the current environment."""
    return Settings(
        database_url=os.environ.get("FLEET_DATABASE_URL") or DEFAULT_DATABASE_URL,
        # API_KEY is still accepted for older deployments
        gemini_api_key=os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY") or None,
        gemini_model=os.environ.get("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
        advisor_timeout=float(os.environ.get("ADVISOR_TIMEOUT", "30")),
        log_level=os.environ.get("FLEET_LOG_LEVEL", "WARNING").upper(),
        secret_key=os.environ.get("FLASK_SECRET_KEY", "dev-secret-key"),
    )
