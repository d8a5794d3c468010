"""YAML loader for content trees.

Example document::

    root: "main:/index"
    pages:
      - ref: "main:/index"
        title: Home
        children: ["/projects", "archive:/old"]
        tasks:
          - id: release
            label: Ship the release
            status: blocked
            date: 2024-01-10
            priorities:
              - priority: low
              - priority: high
                after: 3 days
            assigned_to:
              - user: alice
                after: 2 days
            do_before: ["/projects#review"]
"""

from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

import structlog
import yaml

from task_triage.errors import ResolutionError, TaskValidationError
from task_triage.models import (
    Element,
    Note,
    Offset,
    Page,
    PageRef,
    Priority,
    Schedule,
    StatusResult,
    Task,
    TaskAssignment,
    TaskLookup,
    TaskPriority,
    TimeUnit,
    check_schedule,
)
from task_triage.task_log import TaskLogEntry
from task_triage.tree import ContentTree

logger = structlog.get_logger()

_OFFSET_RE = re.compile(r"^\s*(\d+)\s*(?:(day|week|month|year)s?)?\s*$", re.IGNORECASE)


def parse_offset(value: Any) -> Offset:
    """Parse "2 days", "1 week", "3 months" or a bare day count.

    Raises:
        ValueError: If the value is not a valid offset.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid offset: {value!r}")
    if isinstance(value, int):
        return Offset(value, TimeUnit.DAY)
    match = _OFFSET_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid offset: {value!r}")
    unit = TimeUnit(match.group(2).lower()) if match.group(2) else TimeUnit.DAY
    return Offset(int(match.group(1)), unit)


def parse_datetime(value: Any) -> datetime | None:
    """Convert a YAML date, datetime or ISO string to a naive local datetime.

    Values with a UTC offset are converted to local time, since task dates are
    compared against a naive "now".
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_page_ref(value: str, book: str | None) -> PageRef:
    """Parse "book:/path" or "/path" (relative to ``book``)."""
    text = str(value).strip()
    if ":" in text:
        ref_book, path = text.split(":", 1)
        return PageRef(ref_book or None, path)
    return PageRef(book, text)


def parse_task_lookup(value: str, page_ref: PageRef) -> TaskLookup:
    """Parse "[book:]/path#id", or "#id" / "id" for a task on the same page."""
    text = str(value).strip()
    if "#" not in text:
        return TaskLookup(page_ref, text)
    ref_text, task_id = text.rsplit("#", 1)
    if not ref_text:
        return TaskLookup(page_ref, task_id)
    return TaskLookup(parse_page_ref(ref_text, page_ref.book), task_id)


class YamlTreeLoader:
    """Loads pages and tasks from a YAML document.

    Malformed pages and tasks are logged and skipped.
    """

    def __init__(self, tree_path: str = "tasks.yaml") -> None:
        self._pages: list[Page] = []
        self._root: PageRef | None = None
        self._path = tree_path
        self._load(tree_path)

    def _load(self, tree_path: str) -> None:
        tree_file = Path(tree_path)

        if not tree_file.exists():
            logger.info("tree_file_not_found", path=tree_path)
            return

        try:
            with tree_file.open("r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error("yaml_parse_error", path=tree_path, error=str(e))
            return

        self._load_data(data)

    def _load_data(self, data: Any) -> None:
        if not isinstance(data, dict) or "pages" not in data:
            logger.warning("missing_pages_key", path=self._path)
            return

        pages = data["pages"]
        if not isinstance(pages, list):
            logger.warning("pages_not_list", path=self._path)
            return

        default_book = data.get("book")
        seen_refs: set[PageRef] = set()
        for entry in pages:
            if not isinstance(entry, dict):
                logger.warning("invalid_page_entry", entry=entry)
                continue

            ref = entry.get("ref")
            if not ref or not isinstance(ref, str) or not ref.strip():
                logger.warning("missing_or_empty_ref", entry=entry)
                continue

            page_ref = parse_page_ref(ref, default_book)
            if page_ref.book is None:
                logger.warning("page_without_book", ref=ref)
                continue

            if page_ref in seen_refs:
                logger.warning("duplicate_page_ref", ref=str(page_ref))
                continue

            seen_refs.add(page_ref)
            self._pages.append(self._parse_page(entry, page_ref))

        root = data.get("root")
        if root:
            self._root = parse_page_ref(root, default_book)
        elif self._pages:
            self._root = self._pages[0].page_ref

        logger.info("tree_loaded", path=self._path, page_count=len(self._pages))

    def _parse_page(self, entry: dict, page_ref: PageRef) -> Page:
        children = []
        for child in entry.get("children") or []:
            children.append(parse_page_ref(child, page_ref.book))

        elements: list[Element] = []
        for index, note in enumerate(entry.get("notes") or []):
            elements.append(Note(id=f"note-{index + 1}", page_ref=page_ref, text=str(note)))

        seen_ids = {element.id for element in elements}
        for task_entry in entry.get("tasks") or []:
            task = self._parse_task(task_entry, page_ref)
            if task is None:
                continue
            if task.id in seen_ids:
                logger.warning("duplicate_task_id", page=str(page_ref), task_id=task.id)
                continue
            seen_ids.add(task.id)
            elements.append(task)

        return Page(
            page_ref=page_ref,
            title=str(entry.get("title", "")),
            elements=tuple(elements),
            child_pages=tuple(children),
        )

    def _parse_task(self, entry: Any, page_ref: PageRef) -> Task | None:
        if not isinstance(entry, dict):
            logger.warning("invalid_task_entry", page=str(page_ref), entry=entry)
            return None

        task_id = entry.get("id")
        if not task_id or not isinstance(task_id, str) or not task_id.strip():
            logger.warning("missing_or_empty_task_id", page=str(page_ref))
            return None

        log = logger.bind(page=str(page_ref), task_id=task_id)
        try:
            schedule = Schedule(str(entry.get("status", Schedule.READY.value)).lower())
            status = StatusResult(
                schedule=schedule,
                description=str(entry.get("description", schedule.value.capitalize())),
                css_class=str(entry.get("css_class", f"task-status-{schedule.value}")),
                date=parse_datetime(entry.get("date")),
                comments=entry.get("comments"),
            )
            task = Task(
                id=task_id,
                page_ref=page_ref,
                label=str(entry.get("label", task_id)),
                status=status,
                recurring=entry.get("recurring"),
                on=parse_datetime(entry.get("on")),
                relative=bool(entry.get("relative", False)),
                priorities=tuple(self._parse_priority(p) for p in entry.get("priorities") or []),
                assigned_to=tuple(self._parse_assignment(a) for a in entry.get("assigned_to") or []),
                do_befores=tuple(parse_task_lookup(d, page_ref) for d in entry.get("do_before") or []),
                log=tuple(self._parse_log_entry(e) for e in entry.get("log") or []),
            )
            check_schedule(task)
        except (KeyError, ValueError, TypeError) as e:
            log.warning("failed_to_parse_task", error=str(e))
            return None
        except TaskValidationError as e:
            log.warning("invalid_task_schedule", error=str(e))
            return None
        return task

    @staticmethod
    def _parse_priority(value: Any) -> TaskPriority:
        if isinstance(value, str):
            return TaskPriority(Priority[value.strip().upper()])
        return TaskPriority(
            Priority[str(value["priority"]).strip().upper()],
            parse_offset(value.get("after", 0)),
        )

    @staticmethod
    def _parse_log_entry(value: Any) -> TaskLogEntry:
        timestamp = parse_datetime(value["at"])
        if timestamp is None:
            raise ValueError("Task log entry without a timestamp")
        return TaskLogEntry(
            timestamp=timestamp,
            status=str(value["status"]),
            who=str(value.get("who", "")),
            comments=str(value.get("comments", "")),
        )

    @staticmethod
    def _parse_assignment(value: Any) -> TaskAssignment:
        if isinstance(value, str):
            return TaskAssignment(value.strip())
        return TaskAssignment(str(value["user"]), parse_offset(value.get("after", 0)))

    @property
    def pages(self) -> list[Page]:
        """Return all loaded pages."""
        return list(self._pages)

    def build_tree(self) -> ContentTree:
        """Build the content tree.

        Raises:
            ResolutionError: If no root page was loaded.
        """
        if self._root is None:
            raise ResolutionError(f"No pages loaded from {self._path}")
        return ContentTree(self._pages, self._root)


def load_tree(tree_path: str) -> ContentTree:
    """Load a YAML file and build its content tree."""
    return YamlTreeLoader(tree_path).build_tree()
