from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Dict, Any

from ...utils.datetime import format_rfc3339, current_datetime_utc
from .constants import (
    DEFAULT_TASK_LIST_ID, DEFAULT_MAX_RESULTS, MAX_RESULTS_LIMIT,
    FILTER_COMPLETED, FILTER_NEEDS_ACTION, FILTER_OVERDUE, VALID_FILTERS,
    VALID_SORTS, ORPHANS_PROMOTE, VALID_ORPHAN_POLICIES
)


@dataclass
class TaskQuery:
    """
    Parameters of one tasks.list request plus the local post-processing to apply.

    Every field is optional. Server-side bounds are passed through as-is;
    `filter`, `sort`, `build_hierarchy` and `orphans` drive the local pipeline.

    Example:
        query = TaskQuery(task_list_id="my_list", filter="needsAction", sort="latest_first")
        collection = user.tasks.list_tasks(query)

    Args:
        task_list_id: Task list identifier (default: '@default').
        max_results: Page size (1-100).
        page_token: Token of the page to read.
        completed_min: Lower bound for a task's completion date.
        completed_max: Upper bound for a task's completion date.
        due_min: Lower bound for a task's due date.
        due_max: Upper bound for a task's due date.
        updated_min: Lower bound for a task's last modification time.
        show_completed: Whether completed tasks are returned.
        show_deleted: Whether deleted tasks are returned.
        show_hidden: Whether hidden tasks are returned.
        if_none_match: Entity tag of a previously fetched page; the server
            answers "not modified" when the list has not changed.
        filter: Logical filter: 'completed', 'needsAction', 'overdue' or None.
        sort: Logical sort: 'position', 'latest_first', 'oldest_first' or None.
        build_hierarchy: Nest subtasks under their parents (default True).
        orphans: What to do with a task whose parent is not in the page:
            'promote' it to top level (default) or 'raise'.
    """
    task_list_id: str = DEFAULT_TASK_LIST_ID
    max_results: Optional[int] = DEFAULT_MAX_RESULTS
    page_token: Optional[str] = None
    completed_min: Optional[datetime] = None
    completed_max: Optional[datetime] = None
    due_min: Optional[datetime] = None
    due_max: Optional[datetime] = None
    updated_min: Optional[datetime] = None
    show_completed: Optional[bool] = None
    show_deleted: Optional[bool] = None
    show_hidden: Optional[bool] = None
    if_none_match: Optional[str] = None
    filter: Optional[str] = None
    sort: Optional[str] = None
    build_hierarchy: bool = True
    orphans: str = ORPHANS_PROMOTE

    def __post_init__(self):
        if self.max_results is not None and (self.max_results < 1 or self.max_results > MAX_RESULTS_LIMIT):
            raise ValueError(f"max_results must be between 1 and {MAX_RESULTS_LIMIT}")
        if self.filter is not None and self.filter not in VALID_FILTERS:
            raise ValueError(f"Invalid filter: {self.filter}. Must be one of: {', '.join(VALID_FILTERS)}")
        if self.sort is not None and self.sort not in VALID_SORTS:
            raise ValueError(f"Invalid sort: {self.sort}. Must be one of: {', '.join(VALID_SORTS)}")
        if self.orphans not in VALID_ORPHAN_POLICIES:
            raise ValueError(
                f"Invalid orphan policy: {self.orphans}. Must be one of: {', '.join(VALID_ORPHAN_POLICIES)}"
            )
        if self.completed_min and self.completed_max and self.completed_min >= self.completed_max:
            raise ValueError("completed_min must be before completed_max")
        if self.due_min and self.due_max and self.due_min >= self.due_max:
            raise ValueError("due_min must be before due_max")

    def with_etag(self, etag: Optional[str]) -> "TaskQuery":
        """Returns a copy of this query carrying `etag` as its If-None-Match precondition."""
        return replace(self, if_none_match=etag)

    def to_request_params(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Builds the keyword arguments for tasks().list().

        The logical filter is applied on top of the explicit fields: 'overdue'
        bounds the due date by `now`, 'completed' widens visibility to hidden
        and completed tasks, 'needsAction' narrows it.

        Args:
            now: Reference time for 'overdue' (default: the current time).

        Returns:
            Request parameters for the Tasks API.
        """
        request_params = {'tasklist': self.task_list_id}

        if self.max_results:
            request_params['maxResults'] = self.max_results
        if self.page_token:
            request_params['pageToken'] = self.page_token
        if self.completed_min:
            request_params['completedMin'] = format_rfc3339(self.completed_min)
        if self.completed_max:
            request_params['completedMax'] = format_rfc3339(self.completed_max)
        if self.due_min:
            request_params['dueMin'] = format_rfc3339(self.due_min)
        if self.due_max:
            request_params['dueMax'] = format_rfc3339(self.due_max)
        if self.updated_min:
            request_params['updatedMin'] = format_rfc3339(self.updated_min)
        if self.show_completed is not None:
            request_params['showCompleted'] = self.show_completed
        if self.show_deleted is not None:
            request_params['showDeleted'] = self.show_deleted
        if self.show_hidden is not None:
            request_params['showHidden'] = self.show_hidden

        if self.filter == FILTER_OVERDUE:
            request_params['dueMax'] = format_rfc3339(now or current_datetime_utc())
        elif self.filter == FILTER_COMPLETED:
            request_params['showHidden'] = True
            request_params['showCompleted'] = True
        elif self.filter == FILTER_NEEDS_ACTION:
            request_params['showHidden'] = False
            request_params['showCompleted'] = False

        return request_params
