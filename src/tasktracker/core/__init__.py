"""
Core services.

Components:
- errors.py: typed errors shared by every layer
- ports.py: Protocols the core depends on (store, inference provider)
- persona.py: assistant system prompt
- assistant.py: the Assistant Bridge (task snapshot -> prompt -> provider)
- preferences.py: persisted assistant preferences (provider, keys, models)
- state.py: AppState container built by the composition root
"""
