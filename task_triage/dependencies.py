"""Do-before / do-after relations and priority inheritance."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping, Sequence

import structlog

from task_triage.classifier import resolve_priority
from task_triage.errors import ConsistencyError, DependencyCycleError
from task_triage.models import MAX_PRIORITY, Page, Priority, Task, TaskKey
from task_triage.tree import ContentTree

logger = structlog.get_logger()


def index_tasks(tasks: Iterable[Task]) -> dict[TaskKey, Task]:
    """Index tasks by (page, id).

    Raises:
        ConsistencyError: If two tasks share the same (page, id).
    """
    tasks_by_key: dict[TaskKey, Task] = {}
    for task in tasks:
        key = task.key
        if key in tasks_by_key:
            raise ConsistencyError("Duplicate task (page, id)", key.page_ref, key.task_id)
        tasks_by_key[key] = task
    return tasks_by_key


def invert_dependencies(
    tasks: Sequence[Task],
    tasks_by_key: Mapping[TaskKey, Task] | None = None,
) -> dict[Task, list[Task]]:
    """Build the do-after graph from the declared do-before lookups.

    Every lookup must resolve within ``tasks``; otherwise the tree is
    inconsistent and ConsistencyError is raised.
    """
    if tasks_by_key is None:
        tasks_by_key = index_tasks(tasks)
    do_afters_by_task: dict[Task, list[Task]] = {}
    edge_count = 0
    for task in tasks:
        for lookup in task.do_befores:
            do_before = tasks_by_key.get(lookup.key)
            if do_before is None:
                raise ConsistencyError("Task not found", lookup.page_ref, lookup.task_id)
            do_afters_by_task.setdefault(do_before, []).append(task)
            edge_count += 1
    logger.debug("dependency_graph_built", task_count=len(tasks), edge_count=edge_count)
    return do_afters_by_task


class EffectivePriorityEngine:
    """Computes inherited priorities for a single instant.

    A task's effective priority is the maximum of its own priority and the
    effective priorities of its blocked do-afters. Results are cached for the
    lifetime of the engine, which must not outlive ``now``.
    """

    def __init__(self, now: datetime, do_afters_by_task: Mapping[Task, Sequence[Task]]) -> None:
        self._now = now
        self._do_afters_by_task = do_afters_by_task
        self._effective: dict[Task, Priority] = {}
        self._path: list[Task] = []

    @property
    def now(self) -> datetime:
        return self._now

    def effective_priority(self, task: Task) -> Priority:
        """Return the effective priority of ``task``.

        Evaluation recurses once per blocked do-after on the path, so a chain
        of blocked tasks longer than the interpreter recursion limit raises
        RecursionError.

        Raises:
            DependencyCycleError: If the blocked do-afters lead back to ``task``.
        """
        cached = self._effective.get(task)
        if cached is not None:
            return cached
        if task in self._path:
            raise DependencyCycleError(self._path[self._path.index(task):] + [task])

        effective = resolve_priority(self._now, task, task.status)
        if effective != MAX_PRIORITY:
            self._path.append(task)
            try:
                for do_after in self._do_afters_by_task.get(task, ()):
                    # Only blocked do-afters put pressure on finishing this task
                    if not do_after.status.is_blocked_schedule:
                        continue
                    inherited = self.effective_priority(do_after)
                    if inherited > effective:
                        effective = inherited
                        if effective == MAX_PRIORITY:
                            break
            finally:
                self._path.pop()

        self._effective[task] = effective
        return effective


def get_do_afters(tree: ContentTree, task: Task, root: Page | None = None) -> tuple[Task, ...]:
    """Find every task in the tree that must be done after ``task``."""
    key = task.key
    do_afters: list[Task] = []

    def collect(page: Page) -> None:
        for page_task in page.iter_tasks():
            for lookup in page_task.do_befores:
                if lookup.key == key:
                    do_afters.append(page_task)

    tree.traverse_depth_first(root or tree.root, collect)
    return tuple(do_afters)


def get_multiple_do_afters(
    tree: ContentTree,
    tasks: Iterable[Task],
    root: Page | None = None,
) -> dict[Task, tuple[Task, ...]]:
    """Find the do-afters of each of ``tasks`` in one traversal.

    The result has the same iteration order as ``tasks`` and an empty tuple
    for any task without do-afters.
    """
    results: dict[Task, list[Task]] = {task: [] for task in tasks}
    if not results:
        return {}
    wanted = {task.key: task for task in results}

    def collect(page: Page) -> None:
        for page_task in page.iter_tasks():
            for lookup in page_task.do_befores:
                do_before = wanted.get(lookup.key)
                if do_before is not None:
                    results[do_before].append(page_task)

    tree.traverse_depth_first(root or tree.root, collect)
    return {task: tuple(do_afters) for task, do_afters in results.items()}
