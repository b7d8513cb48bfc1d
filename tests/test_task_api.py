# tests/test_task_api.py

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from tasktracker.core.errors import ForeignKeyError, ValidationError
from tasktracker.core.state import AppState
from tasktracker.tasks import task_api
from tasktracker.tasks.task_models import Priority, TaskStatus

D1 = datetime(2025, 5, 1, tzinfo=UTC)
D2 = datetime(2025, 6, 1, tzinfo=UTC)


@pytest.mark.asyncio
async def test_board_groups_tasks_by_status(state: AppState) -> None:
    p = await task_api.create_project(state, "Alpha")
    await task_api.create_task(state, p.id, title="one")
    await task_api.create_task(state, p.id, title="two", status=TaskStatus.PR_RAISED)
    await task_api.create_task(state, p.id, title="three")

    board = await task_api.load_board(state, p.id)

    assert list(board) == list(TaskStatus)
    assert [t.title for t in board[TaskStatus.NOT_STARTED]] == ["three", "one"]
    assert [t.title for t in board[TaskStatus.PR_RAISED]] == ["two"]
    assert board[TaskStatus.PROD_DEPLOYED] == []


@pytest.mark.asyncio
async def test_create_task_stamps_start_for_advanced_status(state: AppState) -> None:
    p = await task_api.create_project(state, "Alpha")
    t = await task_api.create_task(
        state,
        p.id,
        title="hotfix",
        status=TaskStatus.PROD_DEPLOYED,
        priority=Priority.HIGH,
        blocker="none really",
    )
    assert t.start_date is not None
    assert t.end_date is not None
    assert t.priority is Priority.HIGH
    assert t.is_blocked


@pytest.mark.asyncio
async def test_create_task_unknown_project(state: AppState) -> None:
    with pytest.raises(ForeignKeyError):
        await task_api.create_task(state, 777, title="orphan")


@pytest.mark.asyncio
async def test_counts_per_project(state: AppState) -> None:
    a = await task_api.create_project(state, "A")
    b = await task_api.create_project(state, "B")
    await task_api.create_task(state, a.id, title="x")
    await task_api.create_task(state, a.id, title="y")

    counts = await task_api.project_task_counts(state)
    assert counts.get(a.id) == 2
    assert counts.get(b.id, 0) == 0


@pytest.mark.asyncio
async def test_move_task_stamps_dates(state: AppState) -> None:
    p = await task_api.create_project(state, "Alpha")
    t = await task_api.create_task(state, p.id, title="x")

    moved = await task_api.move_task(state, t.id, TaskStatus.LOCAL_TESTED)
    assert moved.status is TaskStatus.LOCAL_TESTED
    assert moved.start_date is not None
    assert moved.end_date is None

    board = await task_api.load_board(state, p.id)
    assert [c.id for c in board[TaskStatus.LOCAL_TESTED]] == [t.id]


@pytest.mark.asyncio
async def test_move_missing_task_returns_none(state: AppState) -> None:
    assert await task_api.move_task(state, 4242, TaskStatus.STARTED) is None


@pytest.mark.asyncio
async def test_edit_ignores_end_date_unless_deployed(state: AppState) -> None:
    p = await task_api.create_project(state, "Alpha")
    t = await task_api.create_task(state, p.id, title="x", status=TaskStatus.STARTED)

    edited = await task_api.save_task_edit(state, t.id, title="renamed", end_date=D1)
    assert edited.title == "renamed"
    assert edited.end_date is None

    edited = await task_api.save_task_edit(state, t.id, status=TaskStatus.PROD_DEPLOYED, end_date=D2)
    assert edited.status is TaskStatus.PROD_DEPLOYED
    assert edited.end_date == D2


@pytest.mark.asyncio
async def test_edit_writes_dates_verbatim(state: AppState) -> None:
    p = await task_api.create_project(state, "Alpha")
    t = await task_api.create_task(state, p.id, title="x")

    # Saving the form does not stamp; only create and drag do.
    edited = await task_api.save_task_edit(state, t.id, status=TaskStatus.CODE_CHANGED)
    assert edited.status is TaskStatus.CODE_CHANGED
    assert edited.start_date is None

    edited = await task_api.save_task_edit(state, t.id, start_date=D1, assigned_date=D1)
    assert edited.start_date == D1
    assert edited.assigned_date == D1


@pytest.mark.asyncio
async def test_edit_clears_fields(state: AppState) -> None:
    p = await task_api.create_project(state, "Alpha")
    t = await task_api.create_task(
        state, p.id, title="x", description="desc", blocker="db down", status=TaskStatus.STARTED
    )

    edited = await task_api.save_task_edit(state, t.id, clear=frozenset({"blocker", "description", "start_date"}))
    assert edited.blocker is None
    assert edited.description is None
    assert edited.start_date is None
    assert edited.is_blocked is False


@pytest.mark.asyncio
async def test_edit_rejects_unknown_task_and_field(state: AppState) -> None:
    with pytest.raises(ValidationError):
        await task_api.save_task_edit(state, 999, title="x")

    p = await task_api.create_project(state, "Alpha")
    t = await task_api.create_task(state, p.id, title="x")
    with pytest.raises(ValidationError):
        await task_api.save_task_edit(state, t.id, clear=frozenset({"title"}))
    with pytest.raises(ValidationError):
        await task_api.save_task_edit(state, t.id, title="   ")


@pytest.mark.asyncio
async def test_delete_task_and_project(state: AppState) -> None:
    p = await task_api.create_project(state, "Alpha")
    t = await task_api.create_task(state, p.id, title="x")

    assert await task_api.delete_task(state, t.id) is True
    assert await task_api.get_task(state, t.id) is None
    assert await task_api.delete_project(state, p.id) is True
    assert await task_api.list_projects(state) == []
