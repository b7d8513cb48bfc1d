# src/tasktracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- opens the task store and loads assistant preferences,
- wires them into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.preferences import PreferencesStore
from ..core.state import AppState
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.preferences_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    prefs_store = PreferencesStore(settings.preferences_path)
    state = AppState(
        settings=settings,
        store=TaskStore(settings.db_path),
        preferences_store=prefs_store,
        preferences=prefs_store.load(),
    )
    logger.info("State ready (db=%s, provider=%s)", settings.db_path, state.preferences.provider)
    return state


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.store.close()
    except Exception:
        logger.exception("Failed to close the task store.")
