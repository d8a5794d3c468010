"""Error types for task-triage."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from task_triage.models import PageRef


class TaskError(Exception):
    """Base class for all task-triage errors."""


class ConsistencyError(TaskError):
    """Raised when the captured task tree is internally inconsistent.

    This is never recoverable: the current operation is aborted.
    """

    def __init__(self, message: str, page_ref: PageRef | None = None, task_id: str | None = None) -> None:
        if page_ref is not None:
            message = f"{message}: page={page_ref}, id={task_id}"
        super().__init__(message)
        self.page_ref = page_ref
        self.task_id = task_id


class DependencyCycleError(ConsistencyError):
    """Raised when do-before declarations form a cycle."""

    def __init__(self, cycle: list) -> None:
        path = " -> ".join(str(task.key) for task in cycle)
        first = cycle[0]
        super().__init__(f"Dependency cycle detected: {path}")
        self.page_ref = first.page_ref
        self.task_id = first.id
        self.cycle = cycle


class TaskValidationError(TaskError):
    """Raised when a single task's schedule attributes are inconsistent."""


class ResolutionError(TaskError):
    """Raised when a page or task lookup cannot be resolved."""
