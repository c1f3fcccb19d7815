from typing import List, Optional

from .base import APIError, ValidationError


class TasksError(APIError):
    """Base exception for Tasks API errors."""
    pass


class TasksNotFoundError(TasksError):
    """Raised when a task or task list is not found."""
    pass


class TasksPermissionError(TasksError):
    """Raised when the user lacks permission for a tasks operation."""
    pass


class TaskConflictError(TasksError):
    """Raised when the server rejects a write because of a conflicting change."""
    pass


class InvalidTaskDataError(TasksError):
    """Raised when a task or task list body is rejected before or by the API."""
    pass


class TaskMoveError(TasksError):
    """Raised when a task cannot be moved."""
    pass


class MalformedTimestampError(ValidationError):
    """Raised when an RFC 3339 timestamp field cannot be parsed."""

    def __init__(self, value, task_id=None):
        self.value = value
        self.task_id = task_id
        where = f" on task {task_id}" if task_id else ""
        super().__init__(f"Malformed RFC 3339 timestamp{where}: {value!r}")


class DanglingParentError(ValidationError):
    """Raised when tasks reference a parent that is not in the same collection."""

    def __init__(self, task_ids: List[Optional[str]]):
        self.task_ids = list(task_ids)
        super().__init__(
            f"{len(self.task_ids)} task(s) reference a missing parent: {', '.join(str(task_id) for task_id in self.task_ids)}"
        )
