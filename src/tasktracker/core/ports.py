# src/tasktracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the store and the inference providers swappable and makes testing easier.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Literal, Protocol, TypedDict

from ..tasks.task_models import Project, Task, TaskFields, TaskSearchHit, TaskStatus


class ChatMessage(TypedDict):
    role: Literal["user", "assistant"]
    content: str


class InferenceProvider(Protocol):
    """
    One-shot text completion: prompt in, answer text out.

    Implementations raise NetworkError (unreachable, timeout, non-2xx, bad body)
    or ConfigurationError (missing key/model).
    """

    async def ask(self, prompt: str) -> str: ...


class TaskRepo(Protocol):
    # Sidebar
    def list_projects(self) -> list[Project]: ...
    def get_project(self, project_id: int) -> Project | None: ...
    def create_project(self, name: str) -> Project: ...
    def rename_project(self, project_id: int, name: str) -> bool: ...
    def delete_project(self, project_id: int) -> bool: ...
    def renumber_project_order(self, ordered_ids: Sequence[int]) -> None: ...
    def count_tasks_by_project(self) -> dict[int, int]: ...

    # Board / task form
    def list_tasks_by_project(self, project_id: int) -> list[Task]: ...
    def get_task(self, task_id: int) -> Task | None: ...
    def create_task(self, project_id: int, fields: TaskFields, *, now: datetime | None = None) -> Task: ...
    def update_task(self, task_id: int, fields: TaskFields) -> Task | None: ...
    def set_task_status(
            self,
            task_id: int,
            new_status: TaskStatus,
            *,
            now: datetime | None = None,
    ) -> Task | None: ...
    def delete_task(self, task_id: int) -> bool: ...

    # Search box / assistant snapshot
    def search_tasks(self, substring: str, limit: int = 20) -> list[TaskSearchHit]: ...
    def list_all_tasks(self) -> list[Task]: ...

    def close(self) -> None: ...
