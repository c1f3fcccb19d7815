from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, List, TYPE_CHECKING

from ...utils.datetime import parse_rfc3339, format_date_rfc3339
from .constants import (
    MAX_TITLE_LENGTH, MAX_NOTES_LENGTH, VALID_TASK_STATUSES, TASK_STATUS_COMPLETED
)

if TYPE_CHECKING:
    from .query import TaskQuery


@dataclass
class Task:
    """
    Represents a Google Task.
    Args:
        task_id: Unique identifier for the task, stable within its list.
        title: The title of the task.
        notes: Notes describing the task.
        status: Status of the task ('needsAction' or 'completed').
        due: Due date of the task.
        completed: Completion date of the task.
        updated: Last modification time as the RFC 3339 string sent by the API.
        parent: Parent task identifier, None for a top-level task.
        position: Opaque sibling ordering key, compared as a string.
        etag: Entity tag of the stored representation.
        hidden: Whether the task was hidden by clearing completed tasks.
        deleted: Whether the task has been deleted.
        task_list_id: ID of the task list this task belongs to.
        children: Child tasks, populated only by the hierarchy builder.
    """
    task_id: Optional[str] = None
    title: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    due: Optional[date] = None
    completed: Optional[date] = None
    updated: Optional[str] = None
    parent: Optional[str] = None
    position: Optional[str] = None
    etag: Optional[str] = None
    hidden: bool = False
    deleted: bool = False
    task_list_id: Optional[str] = None
    children: List["Task"] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if self.title and len(self.title) > MAX_TITLE_LENGTH:
            raise ValueError(f"Task title cannot exceed {MAX_TITLE_LENGTH} characters")
        if self.notes and len(self.notes) > MAX_NOTES_LENGTH:
            raise ValueError(f"Task notes cannot exceed {MAX_NOTES_LENGTH} characters")
        if self.status and self.status not in VALID_TASK_STATUSES:
            raise ValueError(f"Invalid task status: {self.status}. Must be 'needsAction' or 'completed'")

    def updated_time(self) -> datetime:
        """
        Parses the last modification time.
        Returns:
            Timezone-aware datetime of the last modification.
        Raises:
            MalformedTimestampError: If `updated` is missing or not RFC 3339.
        """
        return parse_rfc3339(self.updated, self.task_id)

    def is_top_level(self) -> bool:
        return not self.parent

    def is_completed(self) -> bool:
        """
        Checks if the task is completed.
        Returns:
            True if the task is completed, False otherwise.
        """
        return self.status == TASK_STATUS_COMPLETED

    def is_overdue(self) -> bool:
        """
        Checks if the task is overdue.
        Returns:
            True if the task has a due date that has passed and is not completed.
        """
        if not self.due or self.is_completed():
            return False
        return self.due < date.today()

    def walk(self):
        """Yields this task and then every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict:
        """Convert Task to dictionary format for Google Tasks API."""
        task_dict = {}
        if self.task_id:
            task_dict['id'] = self.task_id
        if self.title:
            task_dict['title'] = self.title
        if self.notes:
            task_dict['notes'] = self.notes
        if self.status:
            task_dict['status'] = self.status
        if self.due:
            task_dict['due'] = format_date_rfc3339(self.due)
        if self.completed:
            task_dict['completed'] = format_date_rfc3339(self.completed)
        elif self.status and not self.is_completed():
            # Clearing the completion date is how the API reopens a task
            task_dict['completed'] = None
        if self.parent:
            task_dict['parent'] = self.parent
        if self.position:
            task_dict['position'] = self.position
        if self.etag:
            task_dict['etag'] = self.etag
        return task_dict

    def __repr__(self):
        return (
            f"Task(id={self.task_id!r}, title={self.title!r}, "
            f"status={self.status!r}, position={self.position!r}, children={len(self.children)})"
        )


@dataclass
class TaskList:
    """
    Represents a Google Task List.
    Args:
        task_list_id: Unique identifier for the task list.
        title: The title of the task list.
        updated: Last modification time as the RFC 3339 string sent by the API.
        etag: Entity tag of the stored representation.
    """
    task_list_id: Optional[str] = None
    title: Optional[str] = None
    updated: Optional[str] = None
    etag: Optional[str] = None

    def __post_init__(self):
        if self.title and len(self.title) > MAX_TITLE_LENGTH:
            raise ValueError(f"TaskList title cannot exceed {MAX_TITLE_LENGTH} characters")

    def updated_time(self) -> datetime:
        """Parses the last modification time, raising MalformedTimestampError if invalid."""
        return parse_rfc3339(self.updated, self.task_list_id)

    def to_dict(self) -> dict:
        """Convert TaskList to dictionary format for Google Tasks API."""
        task_list_dict = {}
        if self.task_list_id:
            task_list_dict['id'] = self.task_list_id
        if self.title:
            task_list_dict['title'] = self.title
        if self.etag:
            task_list_dict['etag'] = self.etag
        return task_list_dict

    def __repr__(self):
        return f"TaskList(id={self.task_list_id!r}, title={self.title!r})"


def _latest(entities) -> Optional[datetime]:
    latest = None
    for entity in entities:
        updated = entity.updated_time()
        if latest is None or updated > latest:
            latest = updated
    return latest


@dataclass
class TaskCollection:
    """
    One page of tasks returned by a list query.

    `items` is the single sequence owned by the request: it holds the flat
    page as fetched and is replaced by each pipeline stage in turn, ending
    as the top-level tasks when the hierarchy is built.

    Args:
        etag: Entity tag of the list snapshot.
        items: The tasks, flat or hierarchical.
        next_page_token: Token for the next page, if the server has more.
        task_list_id: The task list the page was read from.
        query: The query that produced the page, reused by refresh.
        orphan_ids: Tasks promoted to top level because their parent was not in the page.
    """
    etag: Optional[str] = None
    items: List[Task] = field(default_factory=list)
    next_page_token: Optional[str] = None
    task_list_id: Optional[str] = None
    query: Optional["TaskQuery"] = field(default=None, repr=False)
    orphan_ids: List[str] = field(default_factory=list)

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def walk(self):
        """Yields every task in the collection, parents before their children."""
        for task in self.items:
            yield from task.walk()

    def latest_update(self) -> Optional[datetime]:
        """
        Returns the most recent `updated` time across every task, or None when empty.
        Raises:
            MalformedTimestampError: If any task carries an unparsable timestamp.
        """
        return _latest(self.walk())


@dataclass
class TaskListCollection:
    """
    One page of task lists.
    Args:
        etag: Entity tag of the collection snapshot.
        items: The task lists.
        next_page_token: Token for the next page, if the server has more.
    """
    etag: Optional[str] = None
    items: List[TaskList] = field(default_factory=list)
    next_page_token: Optional[str] = None

    def __len__(self):
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def latest_update(self) -> Optional[datetime]:
        """Returns the most recent `updated` time across the task lists, or None when empty."""
        return _latest(self.items)
