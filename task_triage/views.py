"""Cached task views for one request."""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Iterable, Optional

import structlog

from task_triage import classifier
from task_triage.cache import RequestCache, cached_view
from task_triage.models import Page, StatusResult, Task, TaskAssignment
from task_triage.prioritize import prioritize_tasks
from task_triage.tree import ContentTree

logger = structlog.get_logger()

ALL_TASKS_CACHE_KEY = "task_triage.views.get_all_tasks"
READY_TASKS_CACHE_KEY = "task_triage.views.get_ready_tasks"
BLOCKED_TASKS_CACHE_KEY = "task_triage.views.get_blocked_tasks"
FUTURE_TASKS_CACHE_KEY = "task_triage.views.get_future_tasks"
HAS_ASSIGNED_TASK_CACHE_KEY = "task_triage.views.has_assigned_task"

# (now, task, status, assigned_to) -> whether the task belongs in the view
TaskPredicate = Callable[[datetime, Task, StatusResult, Optional[TaskAssignment]], bool]


def _any_task(now: datetime, task: Task, status: StatusResult, assigned_to: TaskAssignment | None) -> bool:
    return True


def _is_open(now: datetime, task: Task, status: StatusResult, assigned_to: TaskAssignment | None) -> bool:
    return (
        classifier.is_ready(now, task, status, assigned_to)
        or classifier.is_blocked(now, task, status, assigned_to)
        or classifier.is_future(now, task, status, assigned_to)
    )


def _viewer_tasks(page: Page, user: str | None) -> Iterable[tuple[Task, TaskAssignment | None]]:
    for task in page.iter_tasks():
        if user is None:
            yield task, None
        else:
            assigned_to = task.get_assigned_to(user)
            if assigned_to is not None:
                yield task, assigned_to


def collecting_visitor(
    now: datetime, user: str | None, predicate: TaskPredicate, results: list[Task]
) -> Callable[[Page], None]:
    """Page handler appending each matching task of the viewer to ``results``."""

    def visit(page: Page) -> None:
        for task, assigned_to in _viewer_tasks(page, user):
            if predicate(now, task, task.status, assigned_to):
                results.append(task)

    return visit


def matching_visitor(
    now: datetime, user: str | None, predicate: TaskPredicate
) -> Callable[[Page], Optional[bool]]:
    """Page handler stopping the traversal at the first matching task."""

    def visit(page: Page) -> Optional[bool]:
        for task, assigned_to in _viewer_tasks(page, user):
            if predicate(now, task, task.status, assigned_to):
                return True
        return None

    return visit


class TaskSetBuilder:
    """Builds and caches task views for a single request.

    ``now`` is fixed when the builder is created so that every view of one
    request agrees on which tasks are ready.
    """

    def __init__(
        self,
        tree: ContentTree,
        cache: RequestCache | None = None,
        now: datetime | None = None,
    ) -> None:
        self._tree = tree
        self._cache = cache if cache is not None else RequestCache()
        self._now = now if now is not None else datetime.now()

    @property
    def tree(self) -> ContentTree:
        return self._tree

    @property
    def now(self) -> datetime:
        return self._now

    def _collect(self, name: str, root: Page, user: str | None, predicate: TaskPredicate) -> tuple[Task, ...]:
        def build() -> tuple[Task, ...]:
            results: list[Task] = []
            self._tree.traverse_depth_first(root, collecting_visitor(self._now, user, predicate, results))
            logger.debug("view_built", view=name, page=str(root.page_ref), user=user, count=len(results))
            return tuple(results)

        return cached_view(self._cache, name, root, user, build)

    def get_all_tasks(self, root: Page | None = None, user: str | None = None) -> tuple[Task, ...]:
        """All tasks under ``root``, or only those assigned to ``user``."""
        return self._collect(ALL_TASKS_CACHE_KEY, root or self._tree.root, user, _any_task)

    def get_ready_tasks(self, root: Page | None = None, user: str | None = None) -> tuple[Task, ...]:
        return self._collect(READY_TASKS_CACHE_KEY, root or self._tree.root, user, classifier.is_ready)

    def get_blocked_tasks(self, root: Page | None = None, user: str | None = None) -> tuple[Task, ...]:
        return self._collect(BLOCKED_TASKS_CACHE_KEY, root or self._tree.root, user, classifier.is_blocked)

    def get_future_tasks(self, root: Page | None = None, user: str | None = None) -> tuple[Task, ...]:
        return self._collect(FUTURE_TASKS_CACHE_KEY, root or self._tree.root, user, classifier.is_future)

    def has_assigned_task(self, root: Page | None = None, user: str | None = None) -> bool:
        """Whether any ready, blocked or future task is visible to ``user`` under ``root``."""
        root = root or self._tree.root

        def build() -> bool:
            found = self._tree.traverse_any_order(root, matching_visitor(self._now, user, _is_open))
            return found is not None

        return cached_view(self._cache, HAS_ASSIGNED_TASK_CACHE_KEY, root, user, build)

    def prioritize_tasks(self, tasks: Iterable[Task], date_first: bool) -> tuple[Task, ...]:
        """Sort ``tasks`` by priority inherited across the whole content tree."""
        all_tasks = self.get_all_tasks(self._tree.root)
        return prioritize_tasks(tasks, all_tasks, date_first, self._now)
