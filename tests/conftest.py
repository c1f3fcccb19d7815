import pytest
import sys
from pathlib import Path
from unittest.mock import Mock, MagicMock, AsyncMock

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


def make_task(task_id, position=None, parent=None, status="needsAction",
              updated="2025-01-15T10:00:00.000Z", title=None, etag=None):
    """Builds a Task with just the fields the pipeline looks at."""
    from src.google_tasks_client.services.tasks.types import Task
    return Task(
        task_id=task_id,
        title=title or f"Task {task_id}",
        status=status,
        position=position,
        parent=parent,
        updated=updated,
        etag=etag,
        task_list_id="@default"
    )


def make_http_error(status, reason="Error"):
    """Builds a googleapiclient HttpError carrying `status`."""
    from googleapiclient.errors import HttpError
    resp = Mock()
    resp.status = status
    resp.reason = reason
    return HttpError(resp=resp, content=b'')


@pytest.fixture
def task_factory():
    """Factory for pipeline-ready Task objects."""
    return make_task


@pytest.fixture
def http_error():
    """Factory for googleapiclient HttpErrors."""
    return make_http_error


@pytest.fixture
def mock_tasks_service():
    """Mock Tasks API resource as built by googleapiclient."""
    mock_service = MagicMock()
    return mock_service


@pytest.fixture
def tasks_api_service(mock_tasks_service):
    """TasksApiService bound to the mock resource."""
    from src.google_tasks_client.services.tasks.api_service import TasksApiService
    return TasksApiService(mock_tasks_service)


@pytest.fixture
def mock_aiogoogle():
    """Mock open Aiogoogle session."""
    mock_session = Mock()
    mock_session.as_user = AsyncMock()
    return mock_session


@pytest.fixture
def mock_async_tasks_v1():
    """Mock discovered tasks v1 API; requests carry a real headers dict."""
    mock_api = MagicMock()
    for resource in (mock_api.tasks, mock_api.tasklists):
        for method in (resource.list, resource.get):
            method.return_value.headers = {}
    return mock_api


@pytest.fixture
def async_tasks_api_service(mock_aiogoogle, mock_async_tasks_v1):
    """AsyncTasksApiService bound to the mock session."""
    from src.google_tasks_client.services.tasks.async_api_service import AsyncTasksApiService
    return AsyncTasksApiService(mock_aiogoogle, mock_async_tasks_v1)


@pytest.fixture
def sample_task_response():
    """Sample Google Tasks API task response."""
    return {
        "kind": "tasks#task",
        "id": "task_123",
        "etag": "\"etag-task-123\"",
        "title": "Sample Task",
        "notes": "This is a sample task for testing.",
        "status": "needsAction",
        "due": "2025-01-20T00:00:00.000Z",
        "updated": "2025-01-15T10:00:00.000Z",
        "position": "00000000000000000001",
        "parent": None
    }


@pytest.fixture
def sample_task_list_response():
    """Sample Google Tasks API task list response."""
    return {
        "kind": "tasks#taskList",
        "id": "tasklist_123",
        "etag": "\"etag-list-123\"",
        "title": "My Task List",
        "updated": "2025-01-15T10:00:00.000Z"
    }


@pytest.fixture
def sample_tasks_page():
    """A tasks.list page with one subtask listed ahead of its parent."""
    return {
        "kind": "tasks#tasks",
        "etag": "\"page-etag-1\"",
        "items": [
            {"id": "child_1", "title": "Child", "status": "needsAction", "parent": "parent_1",
             "position": "00000000000000000000", "updated": "2025-01-15T12:00:00.000Z"},
            {"id": "parent_1", "title": "Parent", "status": "needsAction",
             "position": "00000000000000000002", "updated": "2025-01-15T09:00:00.000Z"},
            {"id": "top_1", "title": "First", "status": "needsAction",
             "position": "00000000000000000001", "updated": "2025-01-15T11:00:00.000Z"},
            {"id": "done_1", "title": "Done", "status": "completed", "hidden": True,
             "position": "00000000000000000003", "updated": "2025-01-15T08:00:00.000Z",
             "completed": "2025-01-15T08:00:00.000Z"},
        ]
    }


@pytest.fixture
def sample_task_lists_page():
    """A tasklists.list page."""
    return {
        "kind": "tasks#taskLists",
        "etag": "\"lists-etag-1\"",
        "items": [
            {"id": "list1", "title": "List 1", "updated": "2025-01-15T10:00:00.000Z", "etag": "\"l1\""},
            {"id": "list2", "title": "List 2", "updated": "2025-01-15T11:00:00.000Z", "etag": "\"l2\""},
        ]
    }
