# src/tasktracker/core/preferences.py

"""
Assistant preferences: which provider to use, the cloud API key and model names.

Stored as a small JSON key-value file next to the database (never in it),
mirroring the settings panel of the app. The file holds a secret, so it is
written atomically and chmod'ed to 0600.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

ProviderName = Literal["local", "cloud"]
PROVIDERS: tuple[ProviderName, ...] = ("local", "cloud")

DEFAULT_LOCAL_MODEL = "llama3.2"
DEFAULT_CLOUD_MODEL = "gpt-4o-mini"


@dataclass(frozen=True, slots=True)
class AssistantPreferences:
    provider: ProviderName = "local"
    api_key: str = ""
    cloud_model: str = DEFAULT_CLOUD_MODEL
    local_model: str = DEFAULT_LOCAL_MODEL

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())

    def with_changes(self, **changes: Any) -> AssistantPreferences:
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssistantPreferences:
        defaults = cls()

        provider = str(data.get("provider", defaults.provider)).strip().lower()
        if provider not in PROVIDERS:
            logger.warning("Unknown assistant provider %r in preferences; using 'local'.", provider)
            provider = "local"

        def _str(key: str, default: str) -> str:
            v = data.get(key)
            return v.strip() if isinstance(v, str) and v.strip() else default

        return cls(
            provider=provider,  # type: ignore[arg-type]
            api_key=_str("apiKey", ""),
            cloud_model=_str("cloudModel", defaults.cloud_model),
            local_model=_str("localModel", defaults.local_model),
        )

    def to_dict(self) -> dict[str, str]:
        d = asdict(self)
        return {
            "provider": d["provider"],
            "apiKey": d["api_key"],
            "cloudModel": d["cloud_model"],
            "localModel": d["local_model"],
        }


class PreferencesStore:
    """JSON file persistence for AssistantPreferences (best-effort load, atomic save)."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> AssistantPreferences:
        if not self._path.exists():
            return AssistantPreferences()
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to read preferences from %s; using defaults.", self._path)
            return AssistantPreferences()
        if not isinstance(data, dict):
            logger.warning("Preferences file %s is not an object; using defaults.", self._path)
            return AssistantPreferences()
        prefs = AssistantPreferences.from_dict(data)
        logger.info("Loaded preferences from %s (provider=%s)", self._path, prefs.provider)
        return prefs

    def save(self, prefs: AssistantPreferences) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        payload = json.dumps(prefs.to_dict(), ensure_ascii=False, indent=2)

        # The key must never be readable by others, not even in the temp file.
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        with contextlib.suppress(OSError):
            os.chmod(tmp, 0o600)
        os.replace(tmp, self._path)
        logger.info("Saved preferences to %s (provider=%s)", self._path, prefs.provider)
