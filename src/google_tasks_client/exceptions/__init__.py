from .base import GoogleTasksClientError, AuthenticationError, APIError, ValidationError
from .auth import InvalidCredentialsError, ScopeError
from .tasks import (
    TasksError, TasksNotFoundError, TasksPermissionError, TaskConflictError,
    InvalidTaskDataError, TaskMoveError, MalformedTimestampError, DanglingParentError
)

__all__ = [
    "GoogleTasksClientError",
    "AuthenticationError",
    "APIError",
    "ValidationError",
    "InvalidCredentialsError",
    "ScopeError",
    "TasksError",
    "TasksNotFoundError",
    "TasksPermissionError",
    "TaskConflictError",
    "InvalidTaskDataError",
    "TaskMoveError",
    "MalformedTimestampError",
    "DanglingParentError",
]
