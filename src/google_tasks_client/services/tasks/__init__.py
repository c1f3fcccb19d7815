"""Google Tasks API service layer and result pipeline."""

from .api_service import TasksApiService
from .async_api_service import AsyncTasksApiService
from .types import Task, TaskList, TaskCollection, TaskListCollection
from .query import TaskQuery
from .pipeline import (
    status_filter, positional_sort, chronological_sort, reverse_chronological_sort,
    apply_sort, raise_tasks, process_tasks
)

__all__ = [
    # Service layers
    "TasksApiService",
    "AsyncTasksApiService",

    # Data types
    "Task",
    "TaskList",
    "TaskCollection",
    "TaskListCollection",

    # Query
    "TaskQuery",

    # Pipeline stages
    "status_filter",
    "positional_sort",
    "chronological_sort",
    "reverse_chronological_sort",
    "apply_sort",
    "raise_tasks",
    "process_tasks",
]
