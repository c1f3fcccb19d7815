"""
User-centric Google Tasks client.

Each authorized user gets their own client instance carrying their own
credentials; nothing is shared between users.
"""

from typing import Optional, Union

from google.oauth2.credentials import Credentials

from .auth.auth import TasksAuth, get_tasks_service
from .services.tasks import TasksApiService, AsyncTasksApiService


class UserClient:
    """
    User-centric client that provides access to the Tasks API.

    Usage Examples:
        auth = TasksAuth.from_config(TasksConfig.from_env())

        user_1 = UserClient.from_token(auth, user1_token_blob)
        user_2 = UserClient.from_token(auth, user2_token_blob)

        open_tasks = user_1.tasks.list_tasks(filter="needsAction", sort="position")
        lists = user_2.tasks.list_task_lists()

        async with user_1.async_tasks() as tasks:
            collection = await tasks.list_tasks(filter="completed")
    """

    def __init__(self, credentials: Credentials, auth: Optional[TasksAuth] = None):
        """
        Initialize user client with credentials.

        Args:
            credentials: Google OAuth2 credentials for this user
            auth: The TasksAuth that produced them; required for async sessions
        """
        self._credentials = credentials
        self._auth = auth
        self._tasks_service = None

    @classmethod
    def from_token(cls, auth: TasksAuth, token_blob: Union[str, bytes]) -> "UserClient":
        """
        Create a UserClient from a stored token blob.

        Args:
            auth: OAuth helper for the application
            token_blob: The user's stored token blob

        Returns:
            UserClient instance
        """
        return cls(auth.credentials_from_token(token_blob), auth)

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def tasks(self) -> TasksApiService:
        """Get or create the Tasks service for this user."""
        if self._tasks_service is None:
            self._tasks_service = TasksApiService(get_tasks_service(self._credentials))
        return self._tasks_service

    def async_tasks(self):
        """
        Opens an async Tasks session for this user.

        Returns:
            Async context manager yielding an AsyncTasksApiService
        """
        if self._auth is None:
            raise ValueError("UserClient needs the TasksAuth that issued its credentials for async sessions")
        user_creds, client_creds = self._auth.to_aiogoogle_creds(self._credentials)
        return AsyncTasksApiService.connect(user_creds, client_creds)
