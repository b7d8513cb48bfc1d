# tests/test_bootstrap.py

from __future__ import annotations

import json
from pathlib import Path

from tasktracker.cli.bootstrap import create_initial_state, shutdown_state
from tasktracker.config import Settings


def test_settings_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKTRACKER_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("TASKTRACKER_ASSISTANT_TIMEOUT_SECONDS", "0.2")
    monkeypatch.setenv("TASKTRACKER_ASSISTANT_MAX_TOKENS", "not-a-number")
    monkeypatch.delenv("TASKTRACKER_DB_PATH", raising=False)
    monkeypatch.delenv("TASKTRACKER_PREFERENCES_PATH", raising=False)

    s = Settings.from_env()

    assert s.data_dir == tmp_path / "data"
    assert s.db_path == tmp_path / "data" / "tasktracker.sqlite3"
    assert s.preferences_path == tmp_path / "data" / "preferences.json"
    assert s.assistant_timeout_seconds == 1.0
    assert s.assistant_max_tokens == 1000


def test_create_initial_state_loads_preferences(settings) -> None:
    settings.preferences_path.write_text(
        json.dumps({"provider": "cloud", "apiKey": "sk-9", "cloudModel": "gpt-x"}), "utf-8"
    )

    state = create_initial_state(settings=settings)
    try:
        assert state.preferences.provider == "cloud"
        assert state.preferences.cloud_model == "gpt-x"
        assert state.store.count_projects() == 0
        assert settings.db_path.exists()
    finally:
        shutdown_state(state)

    # Closing twice is harmless.
    shutdown_state(state)
