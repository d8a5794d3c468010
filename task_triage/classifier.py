"""Classification of tasks into completed, ready, blocked and future buckets."""

from __future__ import annotations

from datetime import datetime

from task_triage.models import Priority, Schedule, StatusResult, Task, TaskAssignment


def resolve_priority(now: datetime, task: Task, status: StatusResult) -> Priority:
    """Return the task's own priority for its current status at ``now``."""
    if status.date is not None:
        return task.get_priority(status.date, now)
    return task.get_zero_day_priority()


def has_delay(assigned_to: TaskAssignment | None) -> bool:
    return assigned_to is not None and assigned_to.after.count > 0


def is_visible(now: datetime, status: StatusResult, assigned_to: TaskAssignment | None) -> bool:
    """Whether the viewer's assignment delay has elapsed.

    Only applies when the status has a date; an undated task is visible at once.
    """
    if status.date is not None and has_delay(assigned_to):
        return now >= assigned_to.after.apply(status.date)
    return True


def is_ready(
    now: datetime,
    task: Task,
    status: StatusResult,
    assigned_to: TaskAssignment | None = None,
) -> bool:
    if status.is_completed_schedule or not status.is_ready_schedule:
        return False
    if resolve_priority(now, task, status) == Priority.FUTURE:
        return False
    return is_visible(now, status, assigned_to)


def is_blocked(
    now: datetime,
    task: Task,
    status: StatusResult,
    assigned_to: TaskAssignment | None = None,
) -> bool:
    if not status.is_blocked_schedule:
        return False
    if resolve_priority(now, task, status) == Priority.FUTURE:
        return False
    return is_visible(now, status, assigned_to)


def is_future(
    now: datetime,
    task: Task,
    status: StatusResult,
    assigned_to: TaskAssignment | None = None,
) -> bool:
    """Future schedule, or a priority that has not started yet.

    Hidden entirely from a viewer whose assignment carries a delay.
    """
    if has_delay(assigned_to):
        return False
    if status.is_future_schedule:
        return True
    return resolve_priority(now, task, status) == Priority.FUTURE


def classify(
    now: datetime,
    task: Task,
    status: StatusResult | None = None,
    assigned_to: TaskAssignment | None = None,
) -> Schedule | None:
    """Return the bucket a task falls in for this viewer.

    Returns None when the task is not yet visible to the viewer.
    """
    status = status or task.status
    if status.is_completed_schedule:
        return Schedule.COMPLETED
    if is_ready(now, task, status, assigned_to):
        return Schedule.READY
    if is_blocked(now, task, status, assigned_to):
        return Schedule.BLOCKED
    if is_future(now, task, status, assigned_to):
        return Schedule.FUTURE
    return None
