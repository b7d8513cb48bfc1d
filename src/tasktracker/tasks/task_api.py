# src/tasktracker/tasks/task_api.py

"""
Async helpers used by the interactive surface.

Every store call runs in a worker thread (asyncio.to_thread), so a slow disk
never blocks the event loop (chat requests keep running). Errors propagate as
TrackerError subclasses; nothing here retries.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..core.errors import ValidationError
from ..core.state import AppState
from .ordering import move_id
from .status_policy import resolve_end_date_edit
from .task_models import Priority, Project, Task, TaskFields, TaskSearchHit, TaskStatus
from .task_store import MIN_SEARCH_LENGTH, SEARCH_LIMIT

logger = logging.getLogger(__name__)

Board = dict[TaskStatus, list[Task]]


# ---- projects (sidebar) ----

async def list_projects(state: AppState) -> list[Project]:
    return await asyncio.to_thread(state.store.list_projects)


async def project_task_counts(state: AppState) -> dict[int, int]:
    return await asyncio.to_thread(state.store.count_tasks_by_project)


async def create_project(state: AppState, name: str) -> Project:
    return await asyncio.to_thread(state.store.create_project, name)


async def rename_project(state: AppState, project_id: int, name: str) -> bool:
    return await asyncio.to_thread(state.store.rename_project, project_id, name)


async def delete_project(state: AppState, project_id: int) -> bool:
    return await asyncio.to_thread(state.store.delete_project, project_id)


async def reorder_projects(
    state: AppState,
    dragged_id: int,
    target_id: int | None,
) -> list[Project] | None:
    """
    Drag `dragged_id` onto `target_id` in the sidebar.

    Returns the new project order, or None when the drop was a no-op
    (no target, unknown id, dropped on itself).
    """
    projects = await list_projects(state)
    new_ids = move_id([p.id for p in projects], dragged_id, target_id)
    if new_ids is None:
        logger.debug("Reorder no-op dragged=%s target=%s", dragged_id, target_id)
        return None

    await asyncio.to_thread(state.store.renumber_project_order, new_ids)
    return await list_projects(state)


# ---- board ----

async def load_board(state: AppState, project_id: int) -> Board:
    """Kanban columns in workflow order; each column newest first."""
    tasks = await asyncio.to_thread(state.store.list_tasks_by_project, project_id)
    board: Board = {status: [] for status in TaskStatus}
    for t in tasks:
        board[t.status].append(t)
    return board


async def get_task(state: AppState, task_id: int) -> Task | None:
    return await asyncio.to_thread(state.store.get_task, task_id)


async def create_task(
    state: AppState,
    project_id: int,
    *,
    title: str,
    description: str | None = None,
    status: TaskStatus = TaskStatus.NOT_STARTED,
    priority: Priority = Priority.MEDIUM,
    blocker: str | None = None,
) -> Task:
    """Task form "save" for a new task (dates are derived from the starting status)."""
    fields = TaskFields(
        title=title,
        description=description,
        status=status,
        priority=priority,
        blocker=blocker,
    )
    task = await asyncio.to_thread(state.store.create_task, project_id, fields)
    logger.info("Task created id=%s project_id=%s status=%s", task.id, project_id, task.status.value)
    return task


async def save_task_edit(
    state: AppState,
    task_id: int,
    *,
    title: str | None = None,
    description: str | None = None,
    status: TaskStatus | None = None,
    priority: Priority | None = None,
    blocker: str | None = None,
    assigned_date: datetime | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    clear: frozenset[str] = frozenset(),
) -> Task:
    """
    Task form "save" for an existing task.

    Arguments left as None keep the current value; names in `clear` are reset
    to empty (description, blocker, assigned_date, start_date, end_date).
    Dates are written as given, except end_date, which only changes while the
    task is "Prod Deployed".
    """
    current = await get_task(state, task_id)
    if current is None:
        raise ValidationError(f"Task {task_id} does not exist.")

    fields = TaskFields.from_task(current)
    if title is not None:
        fields.title = title
    if description is not None:
        fields.description = description
    if status is not None:
        fields.status = status
    if priority is not None:
        fields.priority = priority
    if blocker is not None:
        fields.blocker = blocker
    if assigned_date is not None:
        fields.assigned_date = assigned_date
    if start_date is not None:
        fields.start_date = start_date

    for name in clear:
        if name not in {"description", "blocker", "assigned_date", "start_date", "end_date"}:
            raise ValidationError(f"Field {name!r} cannot be cleared.")
        if name != "end_date":
            setattr(fields, name, None)

    proposed_end = None if "end_date" in clear else (end_date if end_date is not None else current.end_date)
    fields.end_date = resolve_end_date_edit(fields.status, proposed_end, current.end_date)

    updated = await asyncio.to_thread(state.store.update_task, task_id, fields)
    if updated is None:
        raise ValidationError(f"Task {task_id} does not exist.")
    return updated


async def move_task(state: AppState, task_id: int, new_status: TaskStatus) -> Task | None:
    """Drag a card to another column: status change plus first-time date stamps."""
    task = await asyncio.to_thread(state.store.set_task_status, task_id, new_status)
    if task is not None:
        logger.info("Task %s moved to %s", task_id, new_status.value)
    return task


async def delete_task(state: AppState, task_id: int) -> bool:
    return await asyncio.to_thread(state.store.delete_task, task_id)


# ---- search box ----

async def search_tasks(state: AppState, query: str) -> list[TaskSearchHit]:
    """Live search: fewer than MIN_SEARCH_LENGTH characters never reaches the store."""
    q = (query or "").strip()
    if len(q) < MIN_SEARCH_LENGTH:
        return []
    return await asyncio.to_thread(state.store.search_tasks, q, SEARCH_LIMIT)
