# tests/test_preferences.py

from __future__ import annotations

import json
import os
import stat
import sys
from pathlib import Path

import pytest

from tasktracker.core.preferences import AssistantPreferences, PreferencesStore
from tasktracker.core.state import AppState


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    prefs = PreferencesStore(tmp_path / "nope.json").load()
    assert prefs == AssistantPreferences()
    assert prefs.provider == "local"
    assert not prefs.has_api_key


def test_save_and_load_round_trip_uses_camel_case(tmp_path: Path) -> None:
    path = tmp_path / "prefs" / "preferences.json"
    store = PreferencesStore(path)
    prefs = AssistantPreferences(provider="cloud", api_key="sk-1", cloud_model="gpt-x", local_model="phi3")

    store.save(prefs)

    raw = json.loads(path.read_text("utf-8"))
    assert raw == {"provider": "cloud", "apiKey": "sk-1", "cloudModel": "gpt-x", "localModel": "phi3"}
    assert store.load() == prefs
    assert not path.with_suffix(".tmp").exists()


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_saved_file_is_private(tmp_path: Path) -> None:
    path = tmp_path / "preferences.json"
    PreferencesStore(path).save(AssistantPreferences(api_key="secret"))
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600


def test_corrupt_or_odd_files_fall_back(tmp_path: Path) -> None:
    path = tmp_path / "preferences.json"
    store = PreferencesStore(path)

    path.write_text("{not json", "utf-8")
    assert store.load() == AssistantPreferences()

    path.write_text("[1, 2]", "utf-8")
    assert store.load() == AssistantPreferences()

    path.write_text(json.dumps({"provider": "quantum", "localModel": "  "}), "utf-8")
    prefs = store.load()
    assert prefs.provider == "local"
    assert prefs.local_model == AssistantPreferences().local_model


def test_update_preferences_persists(state: AppState) -> None:
    state.update_preferences(provider="cloud", api_key="sk-2")

    assert state.preferences.provider == "cloud"
    assert state.preferences.has_api_key
    assert state.preferences_store.load() == state.preferences


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
def test_temp_file_is_private_before_replace(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "preferences.json"
    path.with_suffix(".tmp").write_text("stale", "utf-8")
    modes: list[int] = []
    real_replace = os.replace

    def spying_replace(src, dst):
        modes.append(stat.S_IMODE(os.stat(src).st_mode))
        real_replace(src, dst)

    monkeypatch.setattr(os, "replace", spying_replace)
    old_umask = os.umask(0o022)
    try:
        PreferencesStore(path).save(AssistantPreferences(api_key="secret"))
    finally:
        os.umask(old_umask)

    assert modes == [0o600]
    assert json.loads(path.read_text("utf-8"))["apiKey"] == "secret"
