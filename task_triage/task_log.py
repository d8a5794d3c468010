"""Task log entries."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

_STATUS_SPLIT_RE = re.compile(r"[,\s]+")


@dataclass(frozen=True)
class TaskLogEntry:
    """A single status change recorded against a task."""

    timestamp: datetime
    status: str
    who: str = ""
    comments: str = ""


def get_most_recent_entry(entries: Sequence[TaskLogEntry], statuses: str) -> TaskLogEntry | None:
    """Return the latest entry whose status is one of ``statuses``.

    ``statuses`` is a comma or space separated list, matched case-insensitively.
    Entries are expected in chronological order.
    """
    wanted = {status.lower() for status in _STATUS_SPLIT_RE.split(statuses) if status}
    for entry in reversed(entries):
        if entry.status.lower() in wanted:
            return entry
    return None
