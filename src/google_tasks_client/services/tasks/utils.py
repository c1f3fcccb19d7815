import re
from datetime import date
from typing import Optional, Dict, Any, List
import logging

from ...exceptions.tasks import MalformedTimestampError
from ...utils.datetime import parse_rfc3339, convert_datetime_to_local_timezone, format_date_rfc3339
from .types import Task, TaskList, TaskCollection, TaskListCollection
from .constants import (
    MAX_TITLE_LENGTH, MAX_NOTES_LENGTH, VALID_TASK_STATUSES, TASK_STATUS_NEEDS_ACTION
)

logger = logging.getLogger(__name__)


def validate_text_field(value: Optional[str], max_length: int, field_name: str) -> None:
    """Validates text field length and content."""
    if value and len(value) > max_length:
        raise ValueError(f"{field_name} cannot exceed {max_length} characters")


def sanitize_header_value(value: str) -> str:
    """
    Sanitize a string value for safe use in API requests.

    Args:
        value: The string to sanitize

    Returns:
        Sanitized string safe for use in API calls
    """
    if not value:
        return ""

    # Newlines are kept, task notes are multi-line
    sanitized = re.sub(r'[\x00-\x09\x0b-\x1f\x7f-\x9f]', '', value)

    return sanitized.strip()


def parse_due_field(field_value: Optional[str]) -> Optional[date]:
    """
    Parse the due field of a task.

    The API stores only the date part of a due time, as midnight UTC, so the
    calendar date is taken as-is without timezone conversion.

    Args:
        field_value: RFC 3339 string from the API

    Returns:
        The due date or None if absent or unparsable
    """
    if not field_value:
        return None

    try:
        return parse_rfc3339(field_value).date()
    except MalformedTimestampError as e:
        logger.warning("Failed to parse due date: %s", e)
        return None


def parse_completed_field(field_value: Optional[str]) -> Optional[date]:
    """
    Parse the completed field of a task to the local calendar date of completion.

    Args:
        field_value: RFC 3339 string from the API

    Returns:
        Parsed date object or None if absent or unparsable
    """
    if not field_value:
        return None

    try:
        return convert_datetime_to_local_timezone(parse_rfc3339(field_value)).date()
    except MalformedTimestampError as e:
        logger.warning("Failed to parse completion date: %s", e)
        return None


def from_google_task(google_task: Dict[str, Any], task_list_id: Optional[str] = None) -> Task:
    """
    Create a Task instance from a Google Tasks API response.

    `updated` is kept as the raw string; it is parsed when a chronological
    sort or freshness comparison needs it, so a bad value is reported there.

    Args:
        google_task: Dictionary containing task data from Google Tasks API
        task_list_id: The ID of the task list this task belongs to

    Returns:
        Task instance populated with the data from the dictionary
    """
    try:
        status = google_task.get('status', TASK_STATUS_NEEDS_ACTION)
        if status not in VALID_TASK_STATUSES:
            logger.warning("Invalid task status: %s, defaulting to needsAction", status)
            status = TASK_STATUS_NEEDS_ACTION

        return Task(
            task_id=google_task.get('id'),
            title=google_task.get('title', '').strip() if google_task.get('title') else None,
            notes=google_task.get('notes', '').strip() if google_task.get('notes') else None,
            status=status,
            due=parse_due_field(google_task.get('due')),
            completed=parse_completed_field(google_task.get('completed')),
            updated=google_task.get('updated'),
            parent=google_task.get('parent') or None,
            position=google_task.get('position'),
            etag=google_task.get('etag'),
            hidden=bool(google_task.get('hidden', False)),
            deleted=bool(google_task.get('deleted', False)),
            task_list_id=task_list_id
        )

    except Exception as e:
        logger.error("Failed to parse Google Task: %s", e)
        raise ValueError(f"Invalid task data: {e}")


def from_google_task_list(google_task_list: Dict[str, Any]) -> TaskList:
    """
    Create a TaskList instance from a Google Tasks API response.

    Args:
        google_task_list: Dictionary containing task list data from Google Tasks API

    Returns:
        TaskList instance populated with the data from the dictionary
    """
    try:
        return TaskList(
            task_list_id=google_task_list.get('id'),
            title=google_task_list.get('title', '').strip() if google_task_list.get('title') else None,
            updated=google_task_list.get('updated'),
            etag=google_task_list.get('etag')
        )

    except Exception as e:
        logger.error("Failed to parse Google TaskList: %s", e)
        raise ValueError(f"Invalid task list data: {e}")


def parse_tasks(tasks_data: List[Dict[str, Any]], task_list_id: Optional[str] = None) -> List[Task]:
    """Parses task items, skipping (and logging) any that cannot be read."""
    tasks = []
    for task_data in tasks_data:
        try:
            tasks.append(from_google_task(task_data, task_list_id))
        except ValueError as e:
            logger.warning("Skipping task %s: %s", task_data.get('id'), e)
    return tasks


def from_google_tasks(result: Dict[str, Any], task_list_id: Optional[str] = None) -> TaskCollection:
    """
    Create a flat TaskCollection from a tasks.list response.

    Args:
        result: The response body
        task_list_id: The ID of the task list that was listed

    Returns:
        TaskCollection holding the page as returned
    """
    return TaskCollection(
        etag=result.get('etag'),
        items=parse_tasks(result.get('items', []), task_list_id),
        next_page_token=result.get('nextPageToken'),
        task_list_id=task_list_id
    )


def from_google_task_lists(result: Dict[str, Any]) -> TaskListCollection:
    """
    Create a TaskListCollection from a tasklists.list response.

    Args:
        result: The response body

    Returns:
        TaskListCollection holding the page as returned
    """
    task_lists = []
    for task_list_data in result.get('items', []):
        try:
            task_lists.append(from_google_task_list(task_list_data))
        except ValueError as e:
            logger.warning("Skipping task list %s: %s", task_list_data.get('id'), e)

    return TaskListCollection(
        etag=result.get('etag'),
        items=task_lists,
        next_page_token=result.get('nextPageToken')
    )


def create_task_body(
    title: str,
    notes: Optional[str] = None,
    due: Optional[date] = None
) -> Dict[str, Any]:
    """
    Create task body dictionary for Google Tasks API.

    Placement (parent and previous sibling) is not part of the body; the API
    takes it as request parameters.

    Args:
        title: Task title
        notes: Task notes
        due: Due date

    Returns:
        Dictionary suitable for Tasks API requests

    Raises:
        ValueError: If required fields are invalid
    """
    if not title or not title.strip():
        raise ValueError("Task title cannot be empty")

    validate_text_field(title, MAX_TITLE_LENGTH, "title")
    validate_text_field(notes, MAX_NOTES_LENGTH, "notes")

    task_body = {
        'title': sanitize_header_value(title)
    }

    if notes:
        task_body['notes'] = sanitize_header_value(notes)
    if due:
        task_body['due'] = format_date_rfc3339(due)

    return task_body


def create_task_list_body(title: str) -> Dict[str, Any]:
    """
    Create task list body dictionary for Google Tasks API.

    Args:
        title: Task list title

    Returns:
        Dictionary suitable for Tasks API requests

    Raises:
        ValueError: If required fields are invalid
    """
    if not title or not title.strip():
        raise ValueError("Task list title cannot be empty")

    validate_text_field(title, MAX_TITLE_LENGTH, "title")

    return {
        'title': sanitize_header_value(title)
    }
