from contextlib import asynccontextmanager
from typing import Optional, Any, Dict
import logging

from aiogoogle import Aiogoogle
from aiogoogle.excs import HTTPError

from ...exceptions.base import GoogleTasksClientError
from ...exceptions.tasks import (
    TasksError, TasksPermissionError, TasksNotFoundError, TaskConflictError, InvalidTaskDataError
)
from ...utils.log_sanitizer import sanitize_for_logging
from .types import Task, TaskList, TaskCollection, TaskListCollection
from .query import TaskQuery
from .pipeline import process_tasks
from .staleness import with_precondition, apply_refresh
from . import utils
from .constants import (
    DEFAULT_TASK_LIST_ID, MAX_RESULTS_LIMIT, HTTP_NOT_MODIFIED, HTTP_BAD_REQUEST,
    HTTP_FORBIDDEN, HTTP_NOT_FOUND, HTTP_CONFLICT, HTTP_PRECONDITION_FAILED
)

logger = logging.getLogger(__name__)


def _translate_http_error(e: HTTPError, action: str, not_found: str) -> TasksError:
    """Maps an aiogoogle HTTPError to the matching TasksError subclass."""
    status = e.res.status_code if e.res is not None else None
    if status == HTTP_NOT_FOUND:
        return TasksNotFoundError(not_found)
    elif status == HTTP_FORBIDDEN:
        return TasksPermissionError(f"Permission denied {action}: {e}")
    elif status in (HTTP_CONFLICT, HTTP_PRECONDITION_FAILED):
        return TaskConflictError(f"Conflicting change while {action}: {e}")
    elif status == HTTP_BAD_REQUEST:
        return InvalidTaskDataError(f"Request rejected while {action}: {e}")
    else:
        return TasksError(f"Tasks API error {action}: {e}")


class AsyncTasksApiService:
    """
    Async counterpart of TasksApiService for reads and refreshes, over aiogoogle.

    Usage:
        async with AsyncTasksApiService.connect(user_creds, client_creds) as tasks:
            collection = await tasks.list_tasks(TaskQuery(filter="needsAction"))

    Cancelling the awaiting task cancels the request; no local processing
    happens for a cancelled fetch.
    """

    def __init__(self, aiogoogle: Any, service: Any):
        """
        Initialize async Tasks service.

        Args:
            aiogoogle: An open Aiogoogle session carrying the user's credentials
            service: The discovered tasks v1 API
        """
        self._aiogoogle = aiogoogle
        self._service = service

    @classmethod
    @asynccontextmanager
    async def connect(cls, user_creds, client_creds=None):
        """
        Opens an aiogoogle session and discovers the Tasks API.

        Args:
            user_creds: aiogoogle UserCreds for the session (see auth.to_aiogoogle_creds)
            client_creds: aiogoogle ClientCreds, needed to refresh expired tokens

        Yields:
            An AsyncTasksApiService bound to the session
        """
        async with Aiogoogle(user_creds=user_creds, client_creds=client_creds) as aiogoogle:
            tasks_v1 = await aiogoogle.discover('tasks', 'v1')
            yield cls(aiogoogle, tasks_v1)

    async def _execute(self, request, etag: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Sends a prepared request, optionally conditional on `etag`.

        Returns:
            The response body, or None if the server answered 304 Not Modified.
        """
        with_precondition(request, etag)
        response = await self._aiogoogle.as_user(request, full_res=True)
        if response.status_code == HTTP_NOT_MODIFIED:
            return None
        return response.json

    async def list_tasks(self, query: Optional[TaskQuery] = None, **params) -> Optional[TaskCollection]:
        """
        Fetches one page of tasks and runs it through the local pipeline.

        Args:
            query: The query to run. When omitted, a TaskQuery is built from `params`.
            **params: TaskQuery fields.

        Returns:
            The processed TaskCollection, or None if the list has not changed
            since `query.if_none_match`.
        """
        if query is None:
            query = TaskQuery(**params)

        sanitized = sanitize_for_logging(
            task_list_id=query.task_list_id, filter=query.filter,
            sort=query.sort, page_token=query.page_token, if_none_match=query.if_none_match
        )
        logger.info(
            "Fetching tasks (async) from task_list_id=%s, filter=%s, sort=%s, page_token=%s, if_none_match=%s",
            sanitized['task_list_id'], sanitized['filter'], sanitized['sort'],
            sanitized['page_token'], sanitized['if_none_match']
        )

        try:
            request = self._service.tasks.list(**query.to_request_params())
            result = await self._execute(request, query.if_none_match)
            if result is None:
                logger.info("Task list %s not modified", query.task_list_id)
                return None

            collection = utils.from_google_tasks(result, query.task_list_id)
            logger.info("Found %d task items", len(collection.items))

        except HTTPError as e:
            raise _translate_http_error(e, "listing tasks", f"Task list not found: {query.task_list_id}") from e
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
        return collection

    async def refresh_tasks(self, collection: TaskCollection) -> bool:
        """Re-runs the query behind `collection` if the list changed; True if it was replaced."""
        query = collection.query or TaskQuery(task_list_id=collection.task_list_id or DEFAULT_TASK_LIST_ID)
        fresh = await self.list_tasks(query.with_etag(collection.etag))
        return apply_refresh(collection, fresh)

    async def get_task(
            self,
            task_id: str,
            task_list_id: str = DEFAULT_TASK_LIST_ID,
            if_none_match: Optional[str] = None
    ) -> Optional[Task]:
        """
        Retrieves a specific task.

        Returns:
            A Task object, or None if `if_none_match` still matches.
        """
        logger.info("Retrieving task (async) with ID: %s from task list: %s", task_id, task_list_id)

        try:
            request = self._service.tasks.get(tasklist=task_list_id, task=task_id)
            task_data = await self._execute(request, if_none_match)
            if task_data is None:
                return None
            return utils.from_google_task(task_data, task_list_id)

        except HTTPError as e:
            raise _translate_http_error(e, f"getting task {task_id}", f"Task not found: {task_id}") from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("Error retrieving task: %s", e)
            raise TasksError(f"Unexpected error getting task: {e}") from e

    async def refresh_task(self, task: Task, task_list_id: Optional[str] = None) -> bool:
        """Replaces `task` with the server's copy if it changed; True if it was replaced."""
        task_list_id = task_list_id or task.task_list_id or DEFAULT_TASK_LIST_ID
        fresh = await self.get_task(task.task_id, task_list_id, if_none_match=task.etag)
        return apply_refresh(task, fresh)

    async def list_task_lists(
            self,
            max_results: Optional[int] = None,
            page_token: Optional[str] = None,
            if_none_match: Optional[str] = None
    ) -> Optional[TaskListCollection]:
        """
        Fetches one page of task lists.

        Returns:
            A TaskListCollection, or None if `if_none_match` still matches.
        """
        if max_results is not None and (max_results < 1 or max_results > MAX_RESULTS_LIMIT):
            raise ValueError(f"max_results must be between 1 and {MAX_RESULTS_LIMIT}")

        logger.info("Fetching task lists (async), page_token=%s", sanitize_for_logging(page_token=page_token)['page_token'])

        try:
            request_params = {}
            if max_results:
                request_params['maxResults'] = max_results
            if page_token:
                request_params['pageToken'] = page_token

            request = self._service.tasklists.list(**request_params)
            result = await self._execute(request, if_none_match)
            if result is None:
                return None
            return utils.from_google_task_lists(result)

        except HTTPError as e:
            raise _translate_http_error(e, "listing task lists", "Task lists not found") from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("An error occurred while fetching task lists: %s", e)
            raise TasksError(f"Unexpected error listing task lists: {e}") from e

    async def refresh_task_lists(self, collection: TaskListCollection) -> bool:
        """Replaces `collection` with the server's task lists if they changed; True if it was replaced."""
        fresh = await self.list_task_lists(if_none_match=collection.etag)
        return apply_refresh(collection, fresh)

    async def get_task_list(self, task_list_id: str, if_none_match: Optional[str] = None) -> Optional[TaskList]:
        """
        Retrieves a specific task list.

        Returns:
            A TaskList object, or None if `if_none_match` still matches.
        """
        logger.info("Retrieving task list (async) with ID: %s", task_list_id)

        try:
            request = self._service.tasklists.get(tasklist=task_list_id)
            task_list_data = await self._execute(request, if_none_match)
            if task_list_data is None:
                return None
            return utils.from_google_task_list(task_list_data)

        except HTTPError as e:
            raise _translate_http_error(
                e, f"getting task list {task_list_id}", f"Task list not found: {task_list_id}"
            ) from e
        except GoogleTasksClientError:
            raise
        except Exception as e:
            logger.error("Error retrieving task list: %s", e)
            raise TasksError(f"Unexpected error getting task list: {e}") from e

    async def refresh_task_list(self, task_list: TaskList) -> bool:
        """Replaces `task_list` with the server's copy if it changed; True if it was replaced."""
        fresh = await self.get_task_list(task_list.task_list_id, if_none_match=task_list.etag)
        return apply_refresh(task_list, fresh)
