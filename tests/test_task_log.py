"""Tests for task_triage.task_log."""

from datetime import datetime

from task_triage.task_log import TaskLogEntry, get_most_recent_entry

ENTRIES = [
    TaskLogEntry(datetime(2024, 1, 1), "Completed", who="alice"),
    TaskLogEntry(datetime(2024, 1, 8), "Missed"),
    TaskLogEntry(datetime(2024, 1, 15), "Completed", who="bob"),
    TaskLogEntry(datetime(2024, 1, 22), "Progress"),
]


class TestGetMostRecentEntry:
    """Tests for get_most_recent_entry."""

    def test_latest_matching_entry(self):
        entry = get_most_recent_entry(ENTRIES, "Completed")
        assert entry is ENTRIES[2]

    def test_case_insensitive_list(self):
        entry = get_most_recent_entry(ENTRIES, "missed, completed")
        assert entry is ENTRIES[2]

    def test_no_match(self):
        assert get_most_recent_entry(ENTRIES, "Cancelled") is None
        assert get_most_recent_entry([], "Completed") is None
