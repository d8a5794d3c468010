"""Configuration management for task-triage."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "TASK_TRIAGE_"}

    # YAML content tree
    tree_file: str = "tasks.yaml"

    # Report
    user: str | None = None  # only tasks assigned to this user
    date_first: bool = False  # sort by date before priority
    log_statuses: str = "completed, progress"  # log entries shown beside each task

    # Logging
    log_level: str = "INFO"
