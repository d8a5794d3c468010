"""Data models for task-triage."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import Iterator, NamedTuple

from task_triage.errors import TaskValidationError
from task_triage.task_log import TaskLogEntry, get_most_recent_entry


class Priority(IntEnum):
    """Task priority, ordered from least to most urgent."""

    FUTURE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


# Nothing can be inherited above this
MAX_PRIORITY = Priority.CRITICAL

# Used when a task declares no priority rules
DEFAULT_PRIORITY = Priority.MEDIUM


class Schedule(str, Enum):
    """Mutually exclusive schedule state of a task."""

    COMPLETED = "completed"
    READY = "ready"
    BLOCKED = "blocked"
    FUTURE = "future"


class TimeUnit(str, Enum):
    """Calendar unit of an offset."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class Offset:
    """A calendar offset such as "2 days" or "1 month"."""

    count: int = 0
    unit: TimeUnit = TimeUnit.DAY

    def apply(self, when: datetime) -> datetime:
        """Return ``when`` moved forward by this offset."""
        if self.unit is TimeUnit.DAY:
            return when + timedelta(days=self.count)
        if self.unit is TimeUnit.WEEK:
            return when + timedelta(weeks=self.count)
        months = self.count if self.unit is TimeUnit.MONTH else self.count * 12
        return _add_months(when, months)

    def __str__(self) -> str:
        unit = self.unit.value if self.count == 1 else f"{self.unit.value}s"
        return f"{self.count} {unit}"


def _add_months(when: datetime, months: int) -> datetime:
    # Day of month is clamped, so Jan 31 + 1 month is the last day of February
    years, month_index = divmod(when.month - 1 + months, 12)
    year = when.year + years
    month = month_index + 1
    day = min(when.day, calendar.monthrange(year, month)[1])
    return when.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class TaskAssignment:
    """Assignment of a task to a user, optionally delayed by ``after``."""

    user: str
    after: Offset = Offset()

    def __str__(self) -> str:
        if self.after.count == 0:
            return self.user
        return f"{self.user} (after {self.after})"


@dataclass(frozen=True)
class TaskPriority:
    """A priority that applies once ``after`` has passed since the task date."""

    priority: Priority
    after: Offset = Offset()

    def __str__(self) -> str:
        if self.after.count == 0:
            return self.priority.label
        return f"{self.priority.label} after {self.after}"


@dataclass(frozen=True)
class StatusResult:
    """Snapshot of a task's current schedule state."""

    schedule: Schedule
    description: str
    css_class: str = ""
    date: datetime | None = None
    comments: str | None = None

    @property
    def is_completed_schedule(self) -> bool:
        return self.schedule is Schedule.COMPLETED

    @property
    def is_ready_schedule(self) -> bool:
        return self.schedule is Schedule.READY

    @property
    def is_future_schedule(self) -> bool:
        return self.schedule is Schedule.FUTURE

    @property
    def is_blocked_schedule(self) -> bool:
        return self.schedule is Schedule.BLOCKED


@dataclass(frozen=True)
class PageRef:
    """Reference to a page within a book. ``book`` is None when the book is not loaded."""

    book: str | None
    path: str

    def __str__(self) -> str:
        return f"{self.book or '<missing>'}:{self.path}"


class TaskKey(NamedTuple):
    """Identity of a task across the whole tree."""

    page_ref: PageRef
    task_id: str

    def __str__(self) -> str:
        return f"{self.page_ref}#{self.task_id}"


@dataclass(frozen=True)
class TaskLookup:
    """Deferred reference to a task by page and id."""

    page_ref: PageRef
    task_id: str

    @property
    def key(self) -> TaskKey:
        return TaskKey(self.page_ref, self.task_id)


@dataclass(frozen=True, eq=False)
class Element:
    """An element on a page. Identity semantics."""

    id: str
    page_ref: PageRef

    def as_task(self) -> Task | None:
        return None


@dataclass(frozen=True, eq=False)
class Note(Element):
    """Free text element."""

    text: str = ""


@dataclass(frozen=True, eq=False)
class Task(Element):
    """A task element.

    Tasks are read-only snapshots: ``status`` is resolved by whoever builds
    the tree, and the prioritization core never writes back.
    """

    label: str = ""
    status: StatusResult = StatusResult(Schedule.READY, "Ready")
    recurring: str | None = None
    on: datetime | None = None
    relative: bool = False
    priorities: tuple[TaskPriority, ...] = ()
    assigned_to: tuple[TaskAssignment, ...] = ()
    do_befores: tuple[TaskLookup, ...] = ()
    log: tuple[TaskLogEntry, ...] = ()

    def as_task(self) -> Task:
        return self

    @property
    def key(self) -> TaskKey:
        return TaskKey(self.page_ref, self.id)

    def get_assigned_to(self, user: str) -> TaskAssignment | None:
        """Return the assignment for ``user``, or None when not assigned."""
        for assignment in self.assigned_to:
            if assignment.user == user:
                return assignment
        return None

    def get_priority(self, date: datetime, now: datetime) -> Priority:
        """Return the priority in effect at ``now`` for a task dated ``date``.

        The last rule whose window has opened wins. Before any window opens
        the task is FUTURE.
        """
        if not self.priorities:
            return DEFAULT_PRIORITY
        effective = Priority.FUTURE
        for rule in self.priorities:
            if now >= rule.after.apply(date):
                effective = rule.priority
        return effective

    def get_zero_day_priority(self) -> Priority:
        """Return the priority used when the task has no date."""
        if not self.priorities:
            return DEFAULT_PRIORITY
        zero_day = [rule.priority for rule in self.priorities if rule.after.count == 0]
        if zero_day:
            return zero_day[-1]
        return self.priorities[0].priority

    def get_most_recent_entry(self, statuses: str) -> TaskLogEntry | None:
        return get_most_recent_entry(self.log, statuses)

    def __repr__(self) -> str:
        return f"Task({self.key}, label={self.label!r})"


@dataclass(frozen=True, eq=False)
class Page:
    """A page in the content tree."""

    page_ref: PageRef
    title: str = ""
    elements: tuple[Element, ...] = ()
    child_pages: tuple[PageRef, ...] = ()

    def iter_tasks(self) -> Iterator[Task]:
        """Yield the task elements of this page in declared order."""
        for element in self.elements:
            task = element.as_task()
            if task is not None:
                yield task

    def __repr__(self) -> str:
        return f"Page({self.page_ref})"


def check_schedule(task: Task) -> None:
    """Validate the consistency of a task's schedule attributes.

    Raises:
        TaskValidationError: If "on" or "relative" is used incorrectly.
    """
    if task.recurring is not None:
        if task.on is None and not task.relative:
            raise TaskValidationError(
                f'Task {task.key}: "on" attribute required for non-relative recurring tasks.'
            )
    elif task.relative:
        raise TaskValidationError(
            f'Task {task.key}: "relative" attribute only allowed for recurring tasks.'
        )
