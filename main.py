"""Task Triage - prioritized task views over a content tree.

Usage:
    python main.py
    # or via entry point:
    task-triage
"""

import sys

from task_triage.report import run_report


def main() -> None:
    """Entry point for task-triage."""
    sys.exit(run_report())


if __name__ == "__main__":
    main()
