"""Plain text task report for one request."""

from __future__ import annotations

from datetime import datetime

import structlog

from task_triage.cache import RequestCache
from task_triage.config import Settings
from task_triage.dependencies import EffectivePriorityEngine, invert_dependencies
from task_triage.errors import TaskError
from task_triage.models import Task
from task_triage.views import TaskSetBuilder
from task_triage.yaml_tree import load_tree

logger = structlog.get_logger()


class TaskReport:
    """Renders the ready, blocked and future views of a content tree."""

    def __init__(self, builder: TaskSetBuilder, settings: Settings) -> None:
        self._builder = builder
        self._user = settings.user
        self._date_first = settings.date_first
        self._log_statuses = settings.log_statuses

    def render(self) -> str:
        """Render every section, each in priority order."""
        builder = self._builder
        if not builder.has_assigned_task(user=self._user):
            logger.info("no_assigned_tasks", user=self._user)
            return "No tasks."

        engine = EffectivePriorityEngine(builder.now, invert_dependencies(builder.get_all_tasks()))
        sections = [
            ("Ready", builder.get_ready_tasks(user=self._user)),
            ("Blocked", builder.get_blocked_tasks(user=self._user)),
            ("Future", builder.get_future_tasks(user=self._user)),
        ]
        lines: list[str] = []
        for title, tasks in sections:
            if not tasks:
                continue
            lines.append(f"{title} ({len(tasks)})")
            for task in builder.prioritize_tasks(tasks, self._date_first):
                lines.append(self._format_task(task, engine, self._log_statuses))
            lines.append("")
        return "\n".join(lines).rstrip()

    @staticmethod
    def _format_task(task: Task, engine: EffectivePriorityEngine, log_statuses: str) -> str:
        status = task.status
        when = status.date.strftime("%Y-%m-%d") if status.date else "-"
        priority = engine.effective_priority(task)
        line = f"  [{priority.label:<8}] {when:<10}  {task.label}  ({task.key})"
        entry = task.get_most_recent_entry(log_statuses)
        if entry is not None:
            line += f"  last {entry.status} {entry.timestamp:%Y-%m-%d}"
            if entry.who:
                line += f" by {entry.who}"
        return line


def configure_logging(settings: Settings) -> None:
    """Configure structlog for console output."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.stdlib.NAME_TO_LEVEL.get(settings.log_level.lower(), 20)
        ),
    )


def create_report(settings: Settings, now: datetime | None = None) -> TaskReport:
    """Load the configured tree and open a fresh request scope over it."""
    tree = load_tree(settings.tree_file)
    builder = TaskSetBuilder(tree, RequestCache(), now)
    return TaskReport(builder, settings)


def run_report() -> int:
    """Print the report for the configured tree. Returns the exit status."""
    settings = Settings()
    configure_logging(settings)

    try:
        report = create_report(settings)
        print(report.render())
    except TaskError as e:
        logger.error("report_failed", error=str(e))
        return 1
    return 0
