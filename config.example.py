# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Assistant choices that the user edits at runtime (provider, API key, model names) are NOT
environment settings: they live in the preferences JSON file and are changed with
/provider, /apikey and /model.

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKTRACKER_APP_NAME": "App display name (default: tasktracker).",
    "TASKTRACKER_LOG_LEVEL": "File log level (default: INFO).",
    # Paths (gitignored)
    "TASKTRACKER_DATA_DIR": "Local data directory (default: .local/tasktracker).",
    "TASKTRACKER_DB_PATH": "SQLite database path (default: <data_dir>/tasktracker.sqlite3).",
    "TASKTRACKER_PREFERENCES_PATH": "Assistant preferences JSON (default: <data_dir>/preferences.json).",
    # Assistant endpoints
    "TASKTRACKER_OLLAMA_BASE_URL": "Local model server (default: http://localhost:11434).",
    "TASKTRACKER_CLOUD_BASE_URL": "OpenAI-compatible API base URL (default: https://api.openai.com/v1).",
    # Assistant tuning
    "TASKTRACKER_ASSISTANT_TIMEOUT_SECONDS": "Deadline for one answer, min 1 (default: 30).",
    "TASKTRACKER_ASSISTANT_TEMPERATURE": "Sampling temperature (default: 0.3).",
    "TASKTRACKER_ASSISTANT_MAX_TOKENS": "Max tokens per answer (default: 1000).",
    "TASKTRACKER_ASSISTANT_MAX_HISTORY_MESSAGES": "Chat messages resent as context (default: 20).",
}
