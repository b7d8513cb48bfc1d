# src/tasktracker/core/errors.py

from __future__ import annotations


class TrackerError(Exception):
    """Base class for every error the app reports to the user."""


class ValidationError(TrackerError):
    """User input rejected before anything was written (empty title/name, bad status)."""


class ForeignKeyError(TrackerError):
    """A task referenced a project that does not exist."""


class PersistenceError(TrackerError):
    """The SQLite layer failed (disk, lock, corrupt file, ...)."""


class AssistantError(TrackerError):
    """Base class for assistant-side failures (rendered in the chat, never raised to the UI)."""


class NetworkError(AssistantError):
    """Inference endpoint unreachable, timed out, returned non-2xx or an unreadable body."""


class ConfigurationError(AssistantError):
    """Assistant provider selected without what it needs (e.g. cloud without an API key)."""
