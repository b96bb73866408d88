"""Task definition sources."""

from crew_planner.persistence.task_repository import (
    TaskRepository,
    TaskSourceError,
    dump_task_file,
    load_task_file,
)

__all__ = ["TaskRepository", "TaskSourceError", "dump_task_file", "load_task_file"]
