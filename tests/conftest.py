# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from tasktracker.core.preferences import PreferencesStore
from tasktracker.core.state import AppState
from tasktracker.tasks.task_store import TaskStore

from .fakes import FakeProvider


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        data_dir=tmp_path,
        db_path=tmp_path / "tasktracker.sqlite3",
        preferences_path=tmp_path / "preferences.json",
        ollama_base_url="http://localhost:11434",
        cloud_base_url="https://api.example.test/v1",
        assistant_timeout_seconds=5.0,
        assistant_temperature=0.2,
        assistant_max_tokens=256,
        assistant_max_history_messages=6,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> Iterator[TaskStore]:
    s = TaskStore(settings.db_path)
    yield s
    s.close()


@pytest.fixture()
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, provider: FakeProvider) -> AppState:
    """
    AppState wired with a fake inference provider.

    NOTE: We keep the real SQLite store here because its correctness is part
    of what we want to test.
    """
    return AppState(
        settings=settings,
        store=store,
        preferences_store=PreferencesStore(settings.preferences_path),
        provider_builder=lambda prefs, s: provider,
    )
