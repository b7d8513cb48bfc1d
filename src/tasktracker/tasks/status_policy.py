# src/tasktracker/tasks/status_policy.py

"""
Start/end date stamping driven by status transitions.

Rules (evaluated independently):
- entering any status past "Not Started" stamps start_date, unless already set
- entering "Prod Deployed" stamps end_date, unless already set
- anything else leaves both dates alone

Dates are never cleared here; moving a task backwards keeps its stamps.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .task_models import TaskStatus, utc_now

STARTED_STATUSES: frozenset[TaskStatus] = frozenset(
    s for s in TaskStatus if s is not TaskStatus.NOT_STARTED
)

TESTING_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.LOCAL_TESTED, TaskStatus.BETA_TESTING}
)


@dataclass(frozen=True, slots=True)
class DateStamps:
    start_date: datetime | None
    end_date: datetime | None


def stamp_dates(
    new_status: TaskStatus,
    start_date: datetime | None,
    end_date: datetime | None,
    now: datetime | None = None,
) -> DateStamps:
    if now is None:
        now = utc_now()

    if new_status in STARTED_STATUSES and start_date is None:
        start_date = now

    if new_status is TaskStatus.PROD_DEPLOYED and end_date is None:
        end_date = now

    return DateStamps(start_date=start_date, end_date=end_date)


def dates_for_new_task(status: TaskStatus, now: datetime | None = None) -> DateStamps:
    """A task created directly in an advanced column is treated as a move out of Not Started."""
    return stamp_dates(status, None, None, now)


def resolve_end_date_edit(
    status: TaskStatus,
    proposed: datetime | None,
    existing: datetime | None,
) -> datetime | None:
    """
    end_date is editable only while the task is "Prod Deployed".

    For any other status the form field is disabled, so whatever the form
    carries is ignored and the stored value stays.
    """
    if status is TaskStatus.PROD_DEPLOYED:
        return proposed
    return existing


def is_in_progress(status: TaskStatus) -> bool:
    return status in STARTED_STATUSES and status is not TaskStatus.PROD_DEPLOYED


def is_testing(status: TaskStatus) -> bool:
    return status in TESTING_STATUSES


def is_done(status: TaskStatus) -> bool:
    return status is TaskStatus.PROD_DEPLOYED
