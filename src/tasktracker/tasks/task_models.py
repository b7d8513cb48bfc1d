# src/tasktracker/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum


def utc_now() -> datetime:
    return datetime.now(UTC)


class TaskStatus(StrEnum):
    """
    Workflow status. Values are the exact strings stored in the DB and shown as
    kanban column titles.

    Notes:
    - declaration order is the workflow order (used for columns and classification)
    - transitions are not restricted: any status may be set from any other
    """

    NOT_STARTED = "Not Started"
    STARTED = "Started"
    CODE_CHANGED = "Code Changed"
    LOCAL_TESTED = "Local Tested"
    BETA_TESTING = "Beta Testing"
    PR_RAISED = "PR Raised"
    PROD_DEPLOYED = "Prod Deployed"

    @property
    def position(self) -> int:
        return list(TaskStatus).index(self)

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.NOT_STARTED
        try:
            return cls(raw)
        except ValueError:
            return cls.NOT_STARTED

    @classmethod
    def parse(cls, raw: str) -> TaskStatus | None:
        """Lenient parse of user input: 'prod deployed', 'PROD_DEPLOYED', 'code-changed'."""
        key = " ".join((raw or "").replace("_", " ").replace("-", " ").split()).lower()
        for status in cls:
            if status.value.lower() == key:
                return status
        return None


class Priority(StrEnum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM

    @classmethod
    def parse(cls, raw: str) -> Priority | None:
        key = (raw or "").strip().lower()
        for p in cls:
            if p.value.lower() == key:
                return p
        return None


@dataclass(slots=True)
class Project:
    id: int
    name: str
    order_index: int
    created_at: datetime | None


@dataclass(slots=True)
class Task:
    id: int
    project_id: int
    title: str
    description: str | None
    status: TaskStatus
    priority: Priority
    blocker: str | None

    assigned_date: datetime | None
    start_date: datetime | None
    end_date: datetime | None

    created_at: datetime | None
    updated_at: datetime | None

    # Filled only by queries that join projects (assistant snapshot).
    project_name: str | None = None

    @property
    def is_blocked(self) -> bool:
        return bool((self.blocker or "").strip())


@dataclass(slots=True)
class TaskFields:
    """
    Everything the task form can write.

    create_task uses status/priority/blocker/description/title and fills dates
    from the status policy; update_task overwrites all of them as given.
    """

    title: str
    description: str | None = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: Priority = Priority.MEDIUM
    blocker: str | None = None
    assigned_date: datetime | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    @classmethod
    def from_task(cls, task: Task) -> TaskFields:
        return cls(
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            blocker=task.blocker,
            assigned_date=task.assigned_date,
            start_date=task.start_date,
            end_date=task.end_date,
        )


@dataclass(frozen=True, slots=True)
class TaskSearchHit:
    """Enough to navigate to the task and render a preview without another lookup."""

    task_id: int
    project_id: int
    title: str
    status: TaskStatus
    priority: Priority
    project_name: str
    created_at: datetime | None
