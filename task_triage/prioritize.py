"""Ordering of tasks by date and inherited priority."""

from __future__ import annotations

from datetime import datetime
from functools import cmp_to_key
from typing import Iterable, Sequence

import structlog

from task_triage.dependencies import EffectivePriorityEngine, invert_dependencies
from task_triage.models import Task

logger = structlog.get_logger()


def _compare(a, b) -> int:
    return (a > b) - (a < b)


def date_diff(t1: Task, t2: Task) -> int:
    """Dated tasks before undated ones, then earlier dates first."""
    date1 = t1.status.date
    date2 = t2.status.date
    diff = _compare(date2 is not None, date1 is not None)
    if diff != 0:
        return diff
    if date1 is not None and date2 is not None:
        return _compare(date1, date2)
    return 0


class TaskComparator:
    """Compares tasks by date and effective priority for one instant."""

    def __init__(self, engine: EffectivePriorityEngine, date_first: bool) -> None:
        self._engine = engine
        self._date_first = date_first

    def __call__(self, t1: Task, t2: Task) -> int:
        if self._date_first:
            diff = date_diff(t1, t2)
            if diff != 0:
                return diff
        # Higher priority first
        diff = _compare(
            self._engine.effective_priority(t2),
            self._engine.effective_priority(t1),
        )
        if diff != 0:
            return diff
        if not self._date_first:
            return date_diff(t1, t2)
        return 0


def prioritize_tasks(
    tasks: Iterable[Task],
    all_tasks: Sequence[Task],
    date_first: bool,
    now: datetime | None = None,
) -> tuple[Task, ...]:
    """Return ``tasks`` in priority order.

    Args:
        tasks: The tasks to sort. Not modified.
        all_tasks: Every task reachable from the content root, used to find
            the do-afters each priority is inherited from.
        date_first: Sort by date before priority instead of after.
        now: The instant priorities are resolved for; defaults to the current time.

    Returns:
        A new tuple holding the same tasks. The sort is stable.

    Raises:
        ConsistencyError: If a do-before cannot be resolved within ``all_tasks``.
    """
    if now is None:
        now = datetime.now()
    engine = EffectivePriorityEngine(now, invert_dependencies(all_tasks))
    sorted_tasks = sorted(tasks, key=cmp_to_key(TaskComparator(engine, date_first)))
    logger.debug("tasks_prioritized", count=len(sorted_tasks), date_first=date_first)
    return tuple(sorted_tasks)
