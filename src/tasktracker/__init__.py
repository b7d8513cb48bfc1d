"""
tasktracker: a personal kanban board of projects and tasks with an optional
chat assistant that answers questions about them.
"""

__version__ = "0.1.0"
