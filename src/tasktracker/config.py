# src/tasktracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- User-editable assistant choices (provider, API key, models) are NOT here;
  they live in the preferences file (see core/preferences.py).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKTRACKER"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path
    preferences_path: Path

    # ---- Assistant endpoints ----
    ollama_base_url: str
    cloud_base_url: str

    # ---- Assistant tuning ----
    assistant_timeout_seconds: float
    assistant_temperature: float
    assistant_max_tokens: int
    assistant_max_history_messages: int

    @staticmethod
    def from_env() -> Settings:
        app_name = _env(_k("APP_NAME"), "tasktracker")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasktracker"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "tasktracker.sqlite3")
        preferences_path = _env_path(_k("PREFERENCES_PATH"), data_dir / "preferences.json")

        ollama_base_url = _env(_k("OLLAMA_BASE_URL"), "http://localhost:11434")
        cloud_base_url = _env(_k("CLOUD_BASE_URL"), "https://api.openai.com/v1")

        assistant_timeout_seconds = _env_float(_k("ASSISTANT_TIMEOUT_SECONDS"), 30.0)
        assistant_temperature = _env_float(_k("ASSISTANT_TEMPERATURE"), 0.3)
        assistant_max_tokens = _env_int(_k("ASSISTANT_MAX_TOKENS"), 1000)
        assistant_max_history_messages = _env_int(_k("ASSISTANT_MAX_HISTORY_MESSAGES"), 20)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            preferences_path=preferences_path,
            ollama_base_url=ollama_base_url,
            cloud_base_url=cloud_base_url,
            assistant_timeout_seconds=max(1.0, assistant_timeout_seconds),
            assistant_temperature=assistant_temperature,
            assistant_max_tokens=max(1, assistant_max_tokens),
            assistant_max_history_messages=max(0, assistant_max_history_messages),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
