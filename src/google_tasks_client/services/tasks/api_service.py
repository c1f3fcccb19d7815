from datetime import date
from typing import Optional, Any, Dict
import logging

from googleapiclient.errors import HttpError

from ...exceptions.base import GoogleTasksClientError
from ...exceptions.tasks import (
    TasksError, TasksPermissionError, TasksNotFoundError,
    TaskConflictError, InvalidTaskDataError, TaskMoveError
)
from ...utils.log_sanitizer import sanitize_for_logging
from .types import Task, TaskList, TaskCollection, TaskListCollection
from .query import TaskQuery
from .pipeline import process_tasks
from .staleness import with_precondition, apply_refresh
from . import utils
from .constants import (
    DEFAULT_TASK_LIST_ID, MAX_RESULTS_LIMIT, TASK_STATUS_COMPLETED, TASK_STATUS_NEEDS_ACTION,
    HTTP_NOT_MODIFIED, HTTP_BAD_REQUEST, HTTP_FORBIDDEN, HTTP_NOT_FOUND,
    HTTP_CONFLICT, HTTP_PRECONDITION_FAILED
)

logger = logging.getLogger(__name__)


def _translate_http_error(e: HttpError, action: str, not_found: str, default=TasksError) -> TasksError:
    """Maps an HttpError to the matching TasksError subclass."""
    status = e.resp.status
    if status == HTTP_NOT_FOUND:
        return TasksNotFoundError(not_found)
    elif status == HTTP_FORBIDDEN:
        return TasksPermissionError(f"Permission denied {action}: {e}")
    elif status in (HTTP_CONFLICT, HTTP_PRECONDITION_FAILED):
        return TaskConflictError(f"Conflicting change while {action}: {e}")
    elif status == HTTP_BAD_REQUEST:
        return InvalidTaskDataError(f"Request rejected while {action}: {e}")
    else:
        return default(f"Tasks API error {action}: {e}")


class TasksApiService:
    """
    Service layer for Tasks API operations.

    Reads go through the query pipeline; refreshes go through the entity-tag
    precondition and report whether anything changed.
    """

    def __init__(self, service: Any):
        """
        Initialize Tasks service.

        Args:
            service: The Tasks API resource built by googleapiclient
        """
        self._service = service

    def _execute(self, request, etag: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Executes a prepared request, optionally conditional on `etag`.

        Returns:
            The response body, or None if the server answered 304 Not Modified.
        """
        with_precondition(request, etag)
        try:
            return request.execute()
        except HttpError as e:
            if e.resp.status == HTTP_NOT_MODIFIED:
                return None
            raise

    # Task Operations
    def list_tasks(self, query: Optional[TaskQuery] = None, **params) -> Optional[TaskCollection]:
        """
        Fetches one page of tasks and runs it through the local pipeline:
        status filter, sort, then hierarchy reconstruction.

        Args:
            query: The query to run. When omitted, a TaskQuery is built from `params`.
            **params: TaskQuery fields, e.g. task_list_id, filter, sort.

        Returns:
            The processed TaskCollection, or None if `query.if_none_match` was
            given and the list has not changed since.

        Raises:
            TasksError: If the API call fails.
            MalformedTimestampError: If a chronological sort meets a bad timestamp.
            DanglingParentError: If the orphan policy is 'raise' and a parent is missing.
        """
        if query is None:
            query = TaskQuery(**params)

        sanitized = sanitize_for_logging(
            task_list_id=query.task_list_id, max_results=query.max_results,
            filter=query.filter, sort=query.sort, page_token=query.page_token,
            if_none_match=query.if_none_match
        )
        logger.info(
            "Fetching tasks from task_list_id=%s, max_results=%s, filter=%s, sort=%s, page_token=%s, if_none_match=%s",
            sanitized['task_list_id'], sanitized['max_results'], sanitized['filter'],
            sanitized['sort'], sanitized['page_token'], sanitized['if_none_match']
        )

        try:
            request = self._service.tasks().list(**query.to_request_params())
            result = self._execute(request, query.if_none_match)
            if result is None:
                logger.info("Task list %s not modified", query.task_list_id)
                return None

            collection = utils.from_google_tasks(result, query.task_list_id)
            logger.info("Found %d task items", len(collection.items))

        except HttpError as e:
            raise _translate_http_error(
                e, "listing tasks", f"Task list not found: {query.task_list_id}"
            ) from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("An error occurred while fetching tasks: %s", e)
            raise TasksError(f"Unexpected error listing tasks: {e}") from e

        collection.items, collection.orphan_ids = process_tasks(
            collection.items,
            filter=query.filter,
            sort=query.sort,
            build_hierarchy=query.build_hierarchy,
            orphans=query.orphans
        )
        collection.query = query.with_etag(None)

        logger.info("Returning %d tasks after processing", len(collection.items))
        return collection

    def refresh_tasks(self, collection: TaskCollection) -> bool:
        """
        Re-runs the query behind `collection` if the list changed since it was fetched.

        Args:
            collection: A collection returned by list_tasks.

        Returns:
            True if the collection was replaced, False if it was already current.
        """
        query = collection.query or TaskQuery(task_list_id=collection.task_list_id or DEFAULT_TASK_LIST_ID)
        fresh = self.list_tasks(query.with_etag(collection.etag))
        return apply_refresh(collection, fresh)

    def get_task(
            self,
            task_id: str,
            task_list_id: str = DEFAULT_TASK_LIST_ID,
            if_none_match: Optional[str] = None
    ) -> Optional[Task]:
        """
        Retrieves a specific task from Google Tasks using its unique identifier.

        Args:
            task_id: The unique identifier of the task to be retrieved.
            task_list_id: The task list identifier containing the task.
            if_none_match: Entity tag of a previously fetched copy.

        Returns:
            A Task object, or None if `if_none_match` still matches.
        """
        logger.info("Retrieving task with ID: %s from task list: %s", task_id, task_list_id)

        try:
            request = self._service.tasks().get(tasklist=task_list_id, task=task_id)
            task_data = self._execute(request, if_none_match)
            if task_data is None:
                logger.info("Task %s not modified", task_id)
                return None

            logger.info("Task retrieved successfully")
            return utils.from_google_task(task_data, task_list_id)

        except HttpError as e:
            raise _translate_http_error(e, f"getting task {task_id}", f"Task not found: {task_id}") from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("Error retrieving task: %s", e)
            raise TasksError(f"Unexpected error getting task: {e}") from e

    def refresh_task(self, task: Task, task_list_id: Optional[str] = None) -> bool:
        """
        Replaces `task` with the server's copy if it changed since it was fetched.

        Args:
            task: The task to refresh. Its etag is sent as the precondition.
            task_list_id: Task list containing the task (default: the task's own).

        Returns:
            True if the task was replaced, False if it was already current.
        """
        task_list_id = task_list_id or task.task_list_id or DEFAULT_TASK_LIST_ID
        fresh = self.get_task(task.task_id, task_list_id, if_none_match=task.etag)
        return apply_refresh(task, fresh)

    def create_task(
            self,
            title: str,
            task_list_id: str = DEFAULT_TASK_LIST_ID,
            notes: Optional[str] = None,
            due: Optional[date] = None,
            parent: Optional[str] = None,
            previous: Optional[str] = None
    ) -> Task:
        """
        Creates a new task.

        Args:
            title: The title of the task.
            task_list_id: Task list identifier (default: '@default').
            notes: Notes describing the task.
            due: Due date of the task.
            parent: Parent task identifier; omit for a top-level task.
            previous: Previous sibling identifier; omit to insert first among siblings.

        Returns:
            A Task object representing the created task.
        """
        sanitized = sanitize_for_logging(title=title, notes=notes, task_list_id=task_list_id)
        logger.info("Creating task with title=%s, notes=%s in task_list_id=%s",
                    sanitized['title'], sanitized['notes'], sanitized['task_list_id'])

        try:
            task_body = utils.create_task_body(title=title, notes=notes, due=due)

            request_params = {
                'tasklist': task_list_id,
                'body': task_body
            }
            if parent:
                request_params['parent'] = parent
            if previous:
                request_params['previous'] = previous

            created_task = self._service.tasks().insert(**request_params).execute()

            task = utils.from_google_task(created_task, task_list_id)
            logger.info("Task created successfully with ID: %s", task.task_id)
            return task

        except HttpError as e:
            raise _translate_http_error(e, "creating task", f"Task list not found: {task_list_id}") from e
        except ValueError as e:
            raise InvalidTaskDataError(f"Invalid task data: {e}") from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("Error creating task: %s", e)
            raise TasksError(f"Unexpected error creating task: {e}") from e

    def _write_task(self, method: str, task: Task, task_list_id: Optional[str]) -> Task:
        task_list_id = task_list_id or task.task_list_id or DEFAULT_TASK_LIST_ID
        logger.info("Writing task with ID: %s in task list: %s (%s)", task.task_id, task_list_id, method)

        try:
            resource = self._service.tasks()
            request = getattr(resource, method)(
                tasklist=task_list_id,
                task=task.task_id,
                body=task.to_dict()
            )
            written_task = request.execute()

            task = utils.from_google_task(written_task, task_list_id)
            logger.info("Task %s successful", method)
            return task

        except HttpError as e:
            raise _translate_http_error(
                e, f"writing task {task.task_id}", f"Task not found: {task.task_id}"
            ) from e
        except ValueError as e:
            raise InvalidTaskDataError(f"Invalid task data: {e}") from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("Error writing task: %s", e)
            raise TasksError(f"Unexpected error writing task: {e}") from e

    def update_task(self, task: Task, task_list_id: Optional[str] = None) -> Task:
        """
        Replaces the stored task with `task`.

        Args:
            task: The task to update.
            task_list_id: Task list identifier containing the task (default: the task's own).

        Returns:
            A Task object representing the updated task.
        """
        return self._write_task('update', task, task_list_id)

    def patch_task(self, task: Task, task_list_id: Optional[str] = None) -> Task:
        """
        Updates only the fields set on `task`.

        Args:
            task: The task carrying the fields to change.
            task_list_id: Task list identifier containing the task (default: the task's own).

        Returns:
            A Task object representing the patched task.
        """
        return self._write_task('patch', task, task_list_id)

    def delete_task(self, task: Task, task_list_id: Optional[str] = None) -> bool:
        """
        Deletes a task.

        Args:
            task: The task to delete.
            task_list_id: Task list identifier containing the task (default: the task's own).

        Returns:
            True if the operation was successful.
        """
        task_list_id = task_list_id or task.task_list_id or DEFAULT_TASK_LIST_ID
        logger.info("Deleting task with ID: %s from task list: %s", task.task_id, task_list_id)

        try:
            self._service.tasks().delete(
                tasklist=task_list_id,
                task=task.task_id
            ).execute()

            logger.info("Task deleted successfully")
            return True

        except HttpError as e:
            raise _translate_http_error(
                e, f"deleting task {task.task_id}", f"Task not found: {task.task_id}"
            ) from e
        except Exception as e:
            logger.error("Error deleting task: %s", e)
            raise TasksError(f"Unexpected error deleting task: {e}") from e

    def clear_completed(self, task_list_id: str = DEFAULT_TASK_LIST_ID) -> bool:
        """
        Hides every completed task in a task list.

        Args:
            task_list_id: Task list identifier.

        Returns:
            True if the operation was successful.
        """
        logger.info("Clearing completed tasks from task list: %s", task_list_id)

        try:
            self._service.tasks().clear(tasklist=task_list_id).execute()
            logger.info("Completed tasks cleared")
            return True

        except HttpError as e:
            raise _translate_http_error(
                e, "clearing completed tasks", f"Task list not found: {task_list_id}"
            ) from e
        except Exception as e:
            logger.error("Error clearing tasks: %s", e)
            raise TasksError(f"Unexpected error clearing tasks: {e}") from e

    def move_task(
            self,
            task: Task,
            task_list_id: Optional[str] = None,
            parent: Optional[str] = None,
            previous: Optional[str] = None
    ) -> Task:
        """
        Moves a task to a different position in the task list.

        With neither `parent` nor `previous` the task moves to the beginning
        of the top level.

        Args:
            task: The task to move.
            task_list_id: Task list identifier containing the task (default: the task's own).
            parent: New parent task identifier (optional).
            previous: New previous sibling identifier (optional).

        Returns:
            A Task object representing the moved task.
        """
        task_list_id = task_list_id or task.task_list_id or DEFAULT_TASK_LIST_ID
        logger.info("Moving task with ID: %s in task list: %s", task.task_id, task_list_id)

        try:
            request_params = {
                'tasklist': task_list_id,
                'task': task.task_id
            }
            if parent:
                request_params['parent'] = parent
            if previous:
                request_params['previous'] = previous

            moved_task = self._service.tasks().move(**request_params).execute()

            task = utils.from_google_task(moved_task, task_list_id)
            logger.info("Task moved successfully")
            return task

        except HttpError as e:
            raise _translate_http_error(
                e, f"moving task {task.task_id}", f"Task not found: {task.task_id}", default=TaskMoveError
            ) from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("Error moving task: %s", e)
            raise TaskMoveError(f"Unexpected error moving task: {e}") from e

    def mark_completed(self, task: Task, task_list_id: Optional[str] = None) -> Task:
        """
        Marks a task as completed.

        Args:
            task: The task to mark as completed.
            task_list_id: Task list identifier containing the task.

        Returns:
            A Task object representing the updated task.
        """
        task.status = TASK_STATUS_COMPLETED
        task.completed = date.today()
        return self.update_task(task=task, task_list_id=task_list_id)

    def mark_incomplete(self, task: Task, task_list_id: Optional[str] = None) -> Task:
        """
        Marks a task as needing action (incomplete).

        Args:
            task: The task to mark as incomplete.
            task_list_id: Task list identifier containing the task.

        Returns:
            A Task object representing the updated task.
        """
        task.completed = None
        task.status = TASK_STATUS_NEEDS_ACTION
        return self.update_task(task=task, task_list_id=task_list_id)

    # Task List Operations
    def list_task_lists(
            self,
            max_results: Optional[int] = None,
            page_token: Optional[str] = None,
            if_none_match: Optional[str] = None
    ) -> Optional[TaskListCollection]:
        """
        Fetches one page of task lists.

        Args:
            max_results: Page size (1-100).
            page_token: Token of the page to read.
            if_none_match: Entity tag of a previously fetched page.

        Returns:
            A TaskListCollection, or None if `if_none_match` still matches.
        """
        if max_results is not None and (max_results < 1 or max_results > MAX_RESULTS_LIMIT):
            raise ValueError(f"max_results must be between 1 and {MAX_RESULTS_LIMIT}")

        logger.info("Fetching task lists, page_token=%s", sanitize_for_logging(page_token=page_token)['page_token'])

        try:
            request_params = {}
            if max_results:
                request_params['maxResults'] = max_results
            if page_token:
                request_params['pageToken'] = page_token

            request = self._service.tasklists().list(**request_params)
            result = self._execute(request, if_none_match)
            if result is None:
                logger.info("Task lists not modified")
                return None

            collection = utils.from_google_task_lists(result)
            logger.info("Successfully parsed %d task lists", len(collection.items))
            return collection

        except HttpError as e:
            raise _translate_http_error(e, "listing task lists", "Task lists not found") from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("An error occurred while fetching task lists: %s", e)
            raise TasksError(f"Unexpected error listing task lists: {e}") from e

    def refresh_task_lists(self, collection: TaskListCollection) -> bool:
        """
        Replaces `collection` with the server's task lists if they changed.

        Returns:
            True if the collection was replaced, False if it was already current.
        """
        fresh = self.list_task_lists(if_none_match=collection.etag)
        return apply_refresh(collection, fresh)

    def get_task_list(self, task_list_id: str, if_none_match: Optional[str] = None) -> Optional[TaskList]:
        """
        Retrieves a specific task list from Google Tasks.

        Args:
            task_list_id: The unique identifier of the task list.
            if_none_match: Entity tag of a previously fetched copy.

        Returns:
            A TaskList object, or None if `if_none_match` still matches.
        """
        logger.info("Retrieving task list with ID: %s", task_list_id)

        try:
            request = self._service.tasklists().get(tasklist=task_list_id)
            task_list_data = self._execute(request, if_none_match)
            if task_list_data is None:
                logger.info("Task list %s not modified", task_list_id)
                return None

            logger.info("Task list retrieved successfully")
            return utils.from_google_task_list(task_list_data)

        except HttpError as e:
            raise _translate_http_error(
                e, f"getting task list {task_list_id}", f"Task list not found: {task_list_id}"
            ) from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("Error retrieving task list: %s", e)
            raise TasksError(f"Unexpected error getting task list: {e}") from e

    def refresh_task_list(self, task_list: TaskList) -> bool:
        """
        Replaces `task_list` with the server's copy if it changed since it was fetched.

        Args:
            task_list: The task list to refresh. Its etag is sent as the precondition.

        Returns:
            True if the task list was replaced, False if it was already current.
        """
        fresh = self.get_task_list(task_list.task_list_id, if_none_match=task_list.etag)
        return apply_refresh(task_list, fresh)

    def create_task_list(self, title: str) -> TaskList:
        """
        Creates a new task list.

        Args:
            title: The title of the task list.

        Returns:
            A TaskList object representing the created task list.
        """
        sanitized = sanitize_for_logging(title=title)
        logger.info("Creating task list with title=%s", sanitized['title'])

        try:
            task_list_body = utils.create_task_list_body(title)

            created_task_list = self._service.tasklists().insert(
                body=task_list_body
            ).execute()

            task_list = utils.from_google_task_list(created_task_list)
            logger.info("Task list created successfully with ID: %s", task_list.task_list_id)
            return task_list

        except HttpError as e:
            raise _translate_http_error(e, "creating task list", "Task lists not found") from e
        except ValueError as e:
            raise InvalidTaskDataError(f"Invalid task list data: {e}") from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("Error creating task list: %s", e)
            raise TasksError(f"Unexpected error creating task list: {e}") from e

    def _write_task_list(self, method: str, task_list: TaskList, title: str) -> TaskList:
        logger.info("Writing task list with ID: %s (%s)", task_list.task_list_id, method)

        try:
            task_list_body = utils.create_task_list_body(title)
            task_list_body['id'] = task_list.task_list_id

            resource = self._service.tasklists()
            written_task_list = getattr(resource, method)(
                tasklist=task_list.task_list_id,
                body=task_list_body
            ).execute()

            task_list = utils.from_google_task_list(written_task_list)
            logger.info("Task list %s successful", method)
            return task_list

        except HttpError as e:
            raise _translate_http_error(
                e, f"writing task list {task_list.task_list_id}",
                f"Task list not found: {task_list.task_list_id}"
            ) from e
        except ValueError as e:
            raise InvalidTaskDataError(f"Invalid task list data: {e}") from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("Error writing task list: %s", e)
            raise TasksError(f"Unexpected error writing task list: {e}") from e

    def update_task_list(self, task_list: TaskList, title: str) -> TaskList:
        """
        Updates an existing task list.

        Args:
            task_list: The task list to update.
            title: New title for the task list.

        Returns:
            A TaskList object representing the updated task list.
        """
        return self._write_task_list('update', task_list, title)

    def patch_task_list(self, task_list: TaskList, title: str) -> TaskList:
        """
        Patches the title of an existing task list.

        Args:
            task_list: The task list to patch.
            title: New title for the task list.

        Returns:
            A TaskList object representing the patched task list.
        """
        return self._write_task_list('patch', task_list, title)

    def delete_task_list(self, task_list: TaskList) -> bool:
        """
        Deletes a task list.

        Args:
            task_list: The task list to delete.

        Returns:
            True if the operation was successful.
        """
        logger.info("Deleting task list with ID: %s", task_list.task_list_id)

        try:
            self._service.tasklists().delete(
                tasklist=task_list.task_list_id
            ).execute()

            logger.info("Task list deleted successfully")
            return True

        except HttpError as e:
            if e.resp.status == HTTP_BAD_REQUEST:
                raise TasksError(f"Cannot delete default task list: {task_list.task_list_id}") from e
            raise _translate_http_error(
                e, f"deleting task list {task_list.task_list_id}",
                f"Task list not found: {task_list.task_list_id}"
            ) from e
        except Exception as e:
            logger.error("Error deleting task list: %s", e)
            raise TasksError(f"Unexpected error deleting task list: {e}") from e
