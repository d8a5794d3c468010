"""Tests for task_triage.yaml_tree."""

from datetime import datetime, timedelta, timezone

import pytest

from task_triage.errors import ResolutionError
from task_triage.models import Offset, PageRef, Priority, Schedule, TaskLookup, TimeUnit
from task_triage.yaml_tree import (
    YamlTreeLoader,
    load_tree,
    parse_datetime,
    parse_offset,
    parse_page_ref,
    parse_task_lookup,
)

TREE_YAML = """\
root: "main:/index"
book: main
pages:
  - ref: /index
    title: Home
    notes:
      - Welcome
    children:
      - /projects
      - "archive:/old"
    tasks:
      - id: plan
        label: Plan the release
        status: ready
        date: 2024-03-01
        priorities:
          - low
          - priority: high
            after: 1 week
        assigned_to:
          - alice
          - user: bob
            after: 2 days
  - ref: /projects
    tasks:
      - id: ship
        label: Ship it
        status: blocked
        do_before:
          - "/index#plan"
      - id: weekly
        label: Weekly review
        status: future
        recurring: Every week
        relative: true
"""


def _write(tmp_path, content: str) -> str:
    path = tmp_path / "tasks.yaml"
    path.write_text(content)
    return str(path)


class TestParsers:
    """Tests for the value parsers."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (3, Offset(3, TimeUnit.DAY)),
            ("2 days", Offset(2, TimeUnit.DAY)),
            ("1 week", Offset(1, TimeUnit.WEEK)),
            ("6 Months", Offset(6, TimeUnit.MONTH)),
            ("1 year", Offset(1, TimeUnit.YEAR)),
            ("5", Offset(5, TimeUnit.DAY)),
        ],
    )
    def test_parse_offset(self, value, expected):
        assert parse_offset(value) == expected

    @pytest.mark.parametrize("value", ["soon", "2 fortnights", True, "-1 day", "2 s", "2 dayss"])
    def test_parse_offset_invalid(self, value):
        with pytest.raises(ValueError):
            parse_offset(value)

    def test_parse_datetime_naive(self):
        assert parse_datetime("2024-01-10") == datetime(2024, 1, 10)
        assert parse_datetime(datetime(2024, 1, 10, 9)) == datetime(2024, 1, 10, 9)
        assert parse_datetime(None) is None

    def test_parse_datetime_with_offset_is_local_naive(self):
        expected = datetime(2024, 1, 10, 8, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)

        from_text = parse_datetime("2024-01-10T10:00:00+02:00")
        from_yaml = parse_datetime(datetime(2024, 1, 10, 10, tzinfo=timezone(timedelta(hours=2))))

        assert from_text.tzinfo is None
        assert from_text == expected
        assert from_yaml == expected

    def test_parse_page_ref(self):
        assert parse_page_ref("/a", "main") == PageRef("main", "/a")
        assert parse_page_ref("other:/b", "main") == PageRef("other", "/b")

    def test_parse_task_lookup(self):
        here = PageRef("main", "/index")
        assert parse_task_lookup("plan", here) == TaskLookup(here, "plan")
        assert parse_task_lookup("#plan", here) == TaskLookup(here, "plan")
        assert parse_task_lookup("/other#x", here) == TaskLookup(PageRef("main", "/other"), "x")
        assert parse_task_lookup("b:/y#z", here) == TaskLookup(PageRef("b", "/y"), "z")


class TestYamlTreeLoader:
    """Tests for YamlTreeLoader."""

    def test_load_tree(self, tmp_path):
        tree = load_tree(_write(tmp_path, TREE_YAML))

        assert tree.root.page_ref == PageRef("main", "/index")
        assert tree.root.title == "Home"
        assert tree.root.child_pages == (PageRef("main", "/projects"), PageRef("archive", "/old"))

        plan = tree.get_task(PageRef("main", "/index"), "plan")
        assert plan.label == "Plan the release"
        assert plan.status.schedule is Schedule.READY
        assert plan.status.date == datetime(2024, 3, 1)
        assert [rule.priority for rule in plan.priorities] == [Priority.LOW, Priority.HIGH]
        assert plan.priorities[1].after == Offset(1, TimeUnit.WEEK)
        assert plan.get_assigned_to("bob").after == Offset(2, TimeUnit.DAY)
        assert plan.get_assigned_to("alice").after.count == 0

        ship = tree.get_task(PageRef("main", "/projects"), "ship")
        assert ship.do_befores == (TaskLookup(PageRef("main", "/index"), "plan"),)

    def test_notes_are_not_tasks(self, tmp_path):
        tree = load_tree(_write(tmp_path, TREE_YAML))
        assert len(tree.root.elements) == 2
        assert [task.id for task in tree.root.iter_tasks()] == ["plan"]

    def test_invalid_entries_are_skipped(self, tmp_path):
        content = """\
book: main
pages:
  - ref: /index
    tasks:
      - id: good
      - label: no id
      - id: bad_status
        status: sleeping
      - id: bad_priority
        priorities: [urgent]
      - id: bad_schedule
        relative: true
      - id: good
  - not a page
  - title: no ref
  - ref: /index
"""
        loader = YamlTreeLoader(_write(tmp_path, content))
        assert len(loader.pages) == 1
        assert [task.id for task in loader.pages[0].iter_tasks()] == ["good"]

    def test_first_page_is_default_root(self, tmp_path):
        tree = load_tree(_write(tmp_path, "pages:\n  - ref: main:/start\n"))
        assert tree.root.page_ref == PageRef("main", "/start")

    def test_page_without_book_is_skipped(self, tmp_path):
        loader = YamlTreeLoader(_write(tmp_path, "pages:\n  - ref: /start\n"))
        assert loader.pages == []

    def test_missing_file(self, tmp_path):
        loader = YamlTreeLoader(str(tmp_path / "nope.yaml"))
        assert loader.pages == []
        with pytest.raises(ResolutionError, match="No pages loaded"):
            loader.build_tree()

    def test_invalid_yaml(self, tmp_path):
        loader = YamlTreeLoader(_write(tmp_path, "pages: [unclosed\n"))
        assert loader.pages == []

    def test_missing_pages_key(self, tmp_path):
        loader = YamlTreeLoader(_write(tmp_path, "root: main:/index\n"))
        assert loader.pages == []

    def test_dates_with_offset_compare_with_naive_now(self, tmp_path):
        content = """\
book: main
pages:
  - ref: /index
    tasks:
      - id: call
        date: 2024-01-10 10:00:00+02:00
        priorities:
          - low
          - priority: high
            after: 1 week
"""
        task = load_tree(_write(tmp_path, content)).get_task(PageRef("main", "/index"), "call")

        assert task.status.date.tzinfo is None
        assert task.get_priority(task.status.date, datetime(2024, 3, 4)) == Priority.HIGH

    def test_task_log(self, tmp_path):
        content = """\
book: main
pages:
  - ref: /index
    tasks:
      - id: water
        recurring: Every week
        relative: true
        log:
          - at: 2024-02-19
            status: Completed
            who: alice
          - at: 2024-02-26 09:30:00
            status: Missed
            comments: Away
"""
        task = load_tree(_write(tmp_path, content)).get_task(PageRef("main", "/index"), "water")

        assert [entry.status for entry in task.log] == ["Completed", "Missed"]
        assert task.log[0].timestamp == datetime(2024, 2, 19)
        assert task.log[1].comments == "Away"
        assert task.get_most_recent_entry("completed").who == "alice"

    def test_log_entry_without_timestamp_skips_task(self, tmp_path):
        content = """\
book: main
pages:
  - ref: /index
    tasks:
      - id: keep
      - id: broken
        log:
          - status: Completed
"""
        page = load_tree(_write(tmp_path, content)).root
        assert [task.id for task in page.iter_tasks()] == ["keep"]
