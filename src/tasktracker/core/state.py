# src/tasktracker/core/state.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..llm.client import build_provider
from .assistant import AssistantBridge
from .ports import InferenceProvider, TaskRepo
from .preferences import AssistantPreferences, PreferencesStore

ProviderBuilder = Callable[[AssistantPreferences, Any], InferenceProvider]


@dataclass
class AppState:
    """
    Everything the interactive surface needs, passed by reference.

    Built once by the composition root (cli/bootstrap.py); the store is closed on shutdown.
    """

    settings: Any
    store: TaskRepo
    preferences_store: PreferencesStore
    preferences: AssistantPreferences = field(default_factory=AssistantPreferences)

    # Resolved per question, so preference changes apply immediately.
    provider_builder: ProviderBuilder = build_provider

    assistant: AssistantBridge = field(init=False)

    def __post_init__(self) -> None:
        self.assistant = AssistantBridge(
            self.store,
            lambda: self.provider_builder(self.preferences, self.settings),
            timeout_seconds=float(getattr(self.settings, "assistant_timeout_seconds", 30.0)),
            max_history_messages=int(getattr(self.settings, "assistant_max_history_messages", 20)),
        )

    def update_preferences(self, **changes: Any) -> AssistantPreferences:
        """Apply and persist preference changes (provider, api_key, cloud_model, local_model)."""
        prefs = self.preferences.with_changes(**changes)
        self.preferences_store.save(prefs)
        self.preferences = prefs
        return prefs
