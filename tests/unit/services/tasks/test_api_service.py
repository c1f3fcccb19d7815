import copy
import logging
from dataclasses import asdict
from datetime import date

import pytest
from src.google_tasks_client.services.tasks.query import TaskQuery
from src.google_tasks_client.services.tasks.types import Task, TaskList
from src.google_tasks_client.exceptions.tasks import (
    TasksError, TasksNotFoundError, TasksPermissionError, TaskConflictError,
    InvalidTaskDataError, TaskMoveError, DanglingParentError
)


def ids(tasks):
    return [task.task_id for task in tasks]


@pytest.mark.unit
@pytest.mark.tasks
class TestListTasks:
    """Test cases for listing tasks through the pipeline."""

    def test_list_builds_hierarchy(self, tasks_api_service, mock_tasks_service, sample_tasks_page):
        """The flat page comes back as a positional tree."""
        mock_tasks_service.tasks.return_value.list.return_value.execute.return_value = sample_tasks_page

        collection = tasks_api_service.list_tasks()

        assert collection.etag == '"page-etag-1"'
        assert ids(collection.items) == ["top_1", "parent_1", "done_1"]
        assert ids(collection.items[1].children) == ["child_1"]
        assert collection.orphan_ids == []
        assert collection.task_list_id == "@default"
        mock_tasks_service.tasks.return_value.list.assert_called_once_with(tasklist='@default', maxResults=100)

    def test_list_with_filter(self, tasks_api_service, mock_tasks_service, sample_tasks_page):
        """The status filter runs before the hierarchy is built."""
        mock_tasks_service.tasks.return_value.list.return_value.execute.return_value = sample_tasks_page

        collection = tasks_api_service.list_tasks(filter="completed")

        assert ids(collection.items) == ["done_1"]
        mock_tasks_service.tasks.return_value.list.assert_called_once_with(
            tasklist='@default', maxResults=100, showHidden=True, showCompleted=True
        )

    def test_list_flat_sorted(self, tasks_api_service, mock_tasks_service, sample_tasks_page):
        """Without the hierarchy the requested sort decides the order."""
        mock_tasks_service.tasks.return_value.list.return_value.execute.return_value = sample_tasks_page
        query = TaskQuery(filter="needsAction", sort="oldest_first", build_hierarchy=False)

        collection = tasks_api_service.list_tasks(query)

        assert ids(collection.items) == ["parent_1", "top_1", "child_1"]

    def test_list_logs_sanitized_page_token(self, tasks_api_service, mock_tasks_service, sample_tasks_page, caplog):
        """The page token is logged only by its head and tail."""
        mock_tasks_service.tasks.return_value.list.return_value.execute.return_value = sample_tasks_page

        with caplog.at_level(logging.INFO):
            tasks_api_service.list_tasks(page_token="CgwIABCDEFGHIJKLMNOPQRSTUV")

        assert "[page-token: CgwIAB...STUV]" in caplog.text
        assert "CgwIABCDEFGHIJKLMNOPQRSTUV" not in caplog.text

    def test_list_empty_page(self, tasks_api_service, mock_tasks_service):
        mock_tasks_service.tasks.return_value.list.return_value.execute.return_value = {"etag": '"e"'}

        collection = tasks_api_service.list_tasks()

        assert collection.items == []
        assert len(collection) == 0
        assert collection.latest_update() is None

    def test_list_orphans_raise(self, tasks_api_service, mock_tasks_service):
        """The orphan policy reaches the hierarchy builder."""
        mock_tasks_service.tasks.return_value.list.return_value.execute.return_value = {
            "items": [{"id": "sub", "status": "needsAction", "parent": "hidden_parent", "position": "1",
                       "updated": "2025-01-15T10:00:00.000Z"}]
        }

        with pytest.raises(DanglingParentError):
            tasks_api_service.list_tasks(orphans="raise")

    def test_list_sends_precondition(self, tasks_api_service, mock_tasks_service, sample_tasks_page):
        """if_none_match becomes an If-None-Match header and not a parameter."""
        request = mock_tasks_service.tasks.return_value.list.return_value
        request.headers = {}
        request.execute.return_value = sample_tasks_page

        tasks_api_service.list_tasks(if_none_match='"old-etag"')

        assert request.headers == {'If-None-Match': '"old-etag"'}
        assert 'if_none_match' not in mock_tasks_service.tasks.return_value.list.call_args.kwargs

    def test_list_not_modified(self, tasks_api_service, mock_tasks_service, http_error):
        """A 304 answer yields None."""
        request = mock_tasks_service.tasks.return_value.list.return_value
        request.headers = {}
        request.execute.side_effect = http_error(304, "Not Modified")

        assert tasks_api_service.list_tasks(if_none_match='"same"') is None

    def test_collection_remembers_query(self, tasks_api_service, mock_tasks_service, sample_tasks_page):
        """The stored query drops the precondition so refresh can supply its own."""
        mock_tasks_service.tasks.return_value.list.return_value.execute.return_value = sample_tasks_page

        collection = tasks_api_service.list_tasks(TaskQuery(sort="latest_first", if_none_match='"x"'))

        assert collection.query.sort == "latest_first"
        assert collection.query.if_none_match is None

    @pytest.mark.parametrize("status,expected", [
        (404, TasksNotFoundError),
        (403, TasksPermissionError),
        (409, TaskConflictError),
        (412, TaskConflictError),
        (400, InvalidTaskDataError),
        (500, TasksError),
    ])
    def test_list_error_mapping(self, tasks_api_service, mock_tasks_service, http_error, status, expected):
        mock_tasks_service.tasks.return_value.list.return_value.execute.side_effect = http_error(status)

        with pytest.raises(expected):
            tasks_api_service.list_tasks()

    def test_list_unexpected_error(self, tasks_api_service, mock_tasks_service):
        mock_tasks_service.tasks.return_value.list.return_value.execute.side_effect = RuntimeError("socket closed")

        with pytest.raises(TasksError, match="Unexpected error listing tasks"):
            tasks_api_service.list_tasks()


@pytest.mark.unit
@pytest.mark.tasks
class TestRefresh:
    """Test cases for entity-tag based refresh."""

    def test_refresh_task_list_not_modified(self, tasks_api_service, mock_tasks_service, http_error):
        """A 304 leaves the held task list exactly as it was."""
        task_list = TaskList(task_list_id="list_1", title="Groceries",
                             updated="2025-01-15T10:00:00.000Z", etag='"etag-1"')
        before = copy.deepcopy(asdict(task_list))
        request = mock_tasks_service.tasklists.return_value.get.return_value
        request.headers = {}
        request.execute.side_effect = http_error(304, "Not Modified")

        changed = tasks_api_service.refresh_task_list(task_list)

        assert changed is False
        assert asdict(task_list) == before
        assert request.headers['If-None-Match'] == '"etag-1"'
        mock_tasks_service.tasklists.return_value.get.assert_called_once_with(tasklist="list_1")

    def test_refresh_task_list_modified(self, tasks_api_service, mock_tasks_service):
        """A changed task list is replaced wholesale."""
        task_list = TaskList(task_list_id="list_1", title="Groceries", etag='"etag-1"')
        mock_tasks_service.tasklists.return_value.get.return_value.execute.return_value = {
            "id": "list_1", "title": "Weekly groceries", "etag": '"etag-2"',
            "updated": "2025-01-16T08:00:00.000Z"
        }

        changed = tasks_api_service.refresh_task_list(task_list)

        assert changed is True
        assert task_list.title == "Weekly groceries"
        assert task_list.etag == '"etag-2"'
        assert task_list.updated == "2025-01-16T08:00:00.000Z"

    def test_refresh_task(self, tasks_api_service, mock_tasks_service, sample_task_response):
        task = Task(task_id="task_123", title="Old title", etag='"stale"', task_list_id="list_9")
        mock_tasks_service.tasks.return_value.get.return_value.execute.return_value = sample_task_response

        assert tasks_api_service.refresh_task(task) is True
        assert task.title == "Sample Task"
        assert task.etag == '"etag-task-123"'
        mock_tasks_service.tasks.return_value.get.assert_called_once_with(tasklist="list_9", task="task_123")

    def test_refresh_tasks_reruns_query(self, tasks_api_service, mock_tasks_service, sample_tasks_page):
        """Refresh re-runs the original query with the collection's etag."""
        mock_list = mock_tasks_service.tasks.return_value.list
        mock_list.return_value.headers = {}
        mock_list.return_value.execute.return_value = sample_tasks_page
        collection = tasks_api_service.list_tasks(filter="needsAction")

        changed_page = copy.deepcopy(sample_tasks_page)
        changed_page["etag"] = '"page-etag-2"'
        changed_page["items"].append({"id": "new_1", "title": "New", "status": "needsAction",
                                      "position": "00000000000000000009",
                                      "updated": "2025-01-16T10:00:00.000Z"})
        mock_list.return_value.execute.return_value = changed_page

        changed = tasks_api_service.refresh_tasks(collection)

        assert changed is True
        assert collection.etag == '"page-etag-2"'
        assert ids(collection.items) == ["top_1", "parent_1", "new_1"]
        assert mock_list.return_value.headers['If-None-Match'] == '"page-etag-1"'
        assert mock_list.call_args.kwargs['showCompleted'] is False

    def test_refresh_tasks_not_modified(self, tasks_api_service, mock_tasks_service, sample_tasks_page, http_error):
        mock_list = mock_tasks_service.tasks.return_value.list
        mock_list.return_value.execute.return_value = sample_tasks_page
        collection = tasks_api_service.list_tasks()
        items_before = collection.items

        mock_list.return_value.execute.side_effect = http_error(304, "Not Modified")

        assert tasks_api_service.refresh_tasks(collection) is False
        assert collection.items is items_before
        assert collection.etag == '"page-etag-1"'

    def test_refresh_task_lists(self, tasks_api_service, mock_tasks_service, sample_task_lists_page, http_error):
        mock_list = mock_tasks_service.tasklists.return_value.list
        mock_list.return_value.execute.return_value = sample_task_lists_page
        collection = tasks_api_service.list_task_lists()

        mock_list.return_value.execute.side_effect = http_error(304, "Not Modified")

        assert tasks_api_service.refresh_task_lists(collection) is False
        assert [task_list.task_list_id for task_list in collection] == ["list1", "list2"]


@pytest.mark.unit
@pytest.mark.tasks
class TestTaskWrites:
    """Test cases for task mutations."""

    def test_create_task(self, tasks_api_service, mock_tasks_service, sample_task_response):
        mock_tasks_service.tasks.return_value.insert.return_value.execute.return_value = sample_task_response

        task = tasks_api_service.create_task(
            title="Sample Task", notes="Notes", due=date(2025, 1, 20), parent="p1", previous="s1"
        )

        assert task.task_id == "task_123"
        assert task.due == date(2025, 1, 20)
        mock_tasks_service.tasks.return_value.insert.assert_called_once_with(
            tasklist='@default',
            body={'title': 'Sample Task', 'notes': 'Notes', 'due': '2025-01-20T00:00:00.000Z'},
            parent='p1',
            previous='s1'
        )

    def test_create_task_empty_title(self, tasks_api_service, mock_tasks_service):
        with pytest.raises(InvalidTaskDataError, match="title cannot be empty"):
            tasks_api_service.create_task(title="   ")
        mock_tasks_service.tasks.return_value.insert.assert_not_called()

    def test_create_task_logs_notes_size_only(self, tasks_api_service, mock_tasks_service, sample_task_response,
                                               caplog):
        mock_tasks_service.tasks.return_value.insert.return_value.execute.return_value = sample_task_response

        with caplog.at_level(logging.INFO):
            tasks_api_service.create_task(title="Sample Task", notes="Door code is 4321")

        assert "notes=[notes] (17 chars)" in caplog.text
        assert "4321" not in caplog.text

    def test_update_task(self, tasks_api_service, mock_tasks_service, sample_task_response):
        mock_tasks_service.tasks.return_value.update.return_value.execute.return_value = sample_task_response
        task = Task(task_id="task_123", title="Sample Task", status="needsAction", task_list_id="list_1")

        updated = tasks_api_service.update_task(task)

        assert updated.task_list_id == "list_1"
        mock_tasks_service.tasks.return_value.update.assert_called_once_with(
            tasklist="list_1", task="task_123",
            body={'id': 'task_123', 'title': 'Sample Task', 'status': 'needsAction', 'completed': None}
        )

    def test_patch_task_conflict(self, tasks_api_service, mock_tasks_service, http_error):
        mock_tasks_service.tasks.return_value.patch.return_value.execute.side_effect = http_error(412)

        with pytest.raises(TaskConflictError):
            tasks_api_service.patch_task(Task(task_id="t1", title="x"))

    def test_mark_completed(self, tasks_api_service, mock_tasks_service, sample_task_response):
        completed_response = dict(sample_task_response, status="completed",
                                  completed="2025-01-15T12:00:00.000Z")
        mock_tasks_service.tasks.return_value.update.return_value.execute.return_value = completed_response
        task = Task(task_id="task_123", title="Sample Task", status="needsAction")

        result = tasks_api_service.mark_completed(task)

        assert result.is_completed()
        body = mock_tasks_service.tasks.return_value.update.call_args.kwargs['body']
        assert body['status'] == "completed"
        assert body['completed'].endswith("T00:00:00.000Z")

    def test_mark_incomplete_clears_completion(self, tasks_api_service, mock_tasks_service, sample_task_response):
        mock_tasks_service.tasks.return_value.update.return_value.execute.return_value = sample_task_response
        task = Task(task_id="task_123", title="Sample Task", status="completed", completed=date(2025, 1, 15))

        tasks_api_service.mark_incomplete(task)

        body = mock_tasks_service.tasks.return_value.update.call_args.kwargs['body']
        assert body['status'] == "needsAction"
        assert body['completed'] is None

    def test_delete_task(self, tasks_api_service, mock_tasks_service):
        assert tasks_api_service.delete_task(Task(task_id="t1"), task_list_id="list_1") is True
        mock_tasks_service.tasks.return_value.delete.assert_called_once_with(tasklist="list_1", task="t1")

    def test_delete_task_not_found(self, tasks_api_service, mock_tasks_service, http_error):
        mock_tasks_service.tasks.return_value.delete.return_value.execute.side_effect = http_error(404)

        with pytest.raises(TasksNotFoundError, match="Task not found: t1"):
            tasks_api_service.delete_task(Task(task_id="t1"))

    def test_clear_completed(self, tasks_api_service, mock_tasks_service):
        assert tasks_api_service.clear_completed("list_1") is True
        mock_tasks_service.tasks.return_value.clear.assert_called_once_with(tasklist="list_1")

    def test_move_task(self, tasks_api_service, mock_tasks_service, sample_task_response):
        mock_tasks_service.tasks.return_value.move.return_value.execute.return_value = sample_task_response

        tasks_api_service.move_task(Task(task_id="task_123"), parent="p1")

        mock_tasks_service.tasks.return_value.move.assert_called_once_with(
            tasklist="@default", task="task_123", parent="p1"
        )

    def test_move_task_server_error(self, tasks_api_service, mock_tasks_service, http_error):
        mock_tasks_service.tasks.return_value.move.return_value.execute.side_effect = http_error(500)

        with pytest.raises(TaskMoveError):
            tasks_api_service.move_task(Task(task_id="task_123"), previous="s1")


@pytest.mark.unit
@pytest.mark.tasks
class TestTaskListOperations:
    """Test cases for task list operations."""

    def test_list_task_lists(self, tasks_api_service, mock_tasks_service, sample_task_lists_page):
        mock_tasks_service.tasklists.return_value.list.return_value.execute.return_value = sample_task_lists_page

        collection = tasks_api_service.list_task_lists(max_results=10)

        assert len(collection) == 2
        assert collection.etag == '"lists-etag-1"'
        assert collection.items[1].title == "List 2"
        assert collection.latest_update().hour == 11
        mock_tasks_service.tasklists.return_value.list.assert_called_once_with(maxResults=10)

    def test_list_task_lists_invalid_max_results(self, tasks_api_service):
        with pytest.raises(ValueError, match="max_results must be between 1 and 100"):
            tasks_api_service.list_task_lists(max_results=500)

    def test_list_task_lists_logs_sanitized_page_token(self, tasks_api_service, mock_tasks_service,
                                                       sample_task_lists_page, caplog):
        mock_tasks_service.tasklists.return_value.list.return_value.execute.return_value = sample_task_lists_page

        with caplog.at_level(logging.INFO):
            tasks_api_service.list_task_lists(page_token="CgwIABCDEFGHIJKLMNOPQRSTUV")

        assert "page_token=[page-token: CgwIAB...STUV]" in caplog.text
        assert "CgwIABCDEFGHIJKLMNOPQRSTUV" not in caplog.text

    def test_get_task_list(self, tasks_api_service, mock_tasks_service, sample_task_list_response):
        mock_tasks_service.tasklists.return_value.get.return_value.execute.return_value = sample_task_list_response

        task_list = tasks_api_service.get_task_list("tasklist_123")

        assert task_list.task_list_id == "tasklist_123"
        assert task_list.etag == '"etag-list-123"'

    def test_get_task_list_not_found(self, tasks_api_service, mock_tasks_service, http_error):
        mock_tasks_service.tasklists.return_value.get.return_value.execute.side_effect = http_error(404)

        with pytest.raises(TasksNotFoundError, match="Task list not found: missing"):
            tasks_api_service.get_task_list("missing")

    def test_create_task_list(self, tasks_api_service, mock_tasks_service, sample_task_list_response):
        mock_tasks_service.tasklists.return_value.insert.return_value.execute.return_value = sample_task_list_response

        task_list = tasks_api_service.create_task_list("My Task List")

        assert task_list.title == "My Task List"
        mock_tasks_service.tasklists.return_value.insert.assert_called_once_with(body={'title': 'My Task List'})

    def test_update_task_list(self, tasks_api_service, mock_tasks_service, sample_task_list_response):
        mock_tasks_service.tasklists.return_value.update.return_value.execute.return_value = sample_task_list_response

        tasks_api_service.update_task_list(TaskList(task_list_id="tasklist_123"), "My Task List")

        mock_tasks_service.tasklists.return_value.update.assert_called_once_with(
            tasklist="tasklist_123", body={'title': 'My Task List', 'id': 'tasklist_123'}
        )

    def test_delete_default_task_list(self, tasks_api_service, mock_tasks_service, http_error):
        mock_tasks_service.tasklists.return_value.delete.return_value.execute.side_effect = http_error(400)

        with pytest.raises(TasksError, match="Cannot delete default task list"):
            tasks_api_service.delete_task_list(TaskList(task_list_id="@default"))
