"""
Task subsystem.

Components:
- task_models.py: data structures (Project, Task, TaskStatus, Priority)
- task_store.py: SQLite-backed storage + query/update helpers
- ordering.py: project display-order splice and renumbering rules
- status_policy.py: start/end date stamping driven by status transitions
- task_api.py: async helpers used by the interactive surface
"""
