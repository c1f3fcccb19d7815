"""
OAuth2 credentials for the Tasks API.

A `TasksAuth` holds the OAuth client configuration of one application. It
produces the authorization URL, exchanges authorization codes for token
blobs, and turns a stored token blob back into refreshed credentials. There
is no process-wide state: each authorized session gets its own credentials,
which are passed explicitly to the services that use them.
"""

import json
import logging
from typing import Optional, Dict, Any, Tuple, Union

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow, InstalledAppFlow
from googleapiclient.discovery import build
from aiogoogle.auth.creds import UserCreds, ClientCreds

from ..config import TasksConfig, TASKS_SCOPE, TASKS_READONLY_SCOPE
from ..exceptions.auth import InvalidCredentialsError, ScopeError
from ..utils.log_sanitizer import sanitize_for_logging

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URI = 'https://oauth2.googleapis.com/token'


def load_client_config(credentials_path: str) -> Dict[str, Any]:
    """
    Loads an OAuth client secrets file as downloaded from Google Cloud Console.

    Args:
        credentials_path: Path to credentials.json

    Returns:
        The client configuration dictionary

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a client secrets file
    """
    with open(credentials_path, 'r') as f:
        client_config = json.load(f)

    if 'installed' not in client_config and 'web' not in client_config:
        raise ValueError("Invalid credentials.json format - missing 'installed' or 'web' section")
    return client_config


def encode_token(credentials: Credentials) -> str:
    """Serializes credentials into a token blob suitable for storage."""
    return credentials.to_json()


def decode_token(token_blob: Union[str, bytes]) -> Dict[str, Any]:
    """
    Parses a token blob.

    Raises:
        InvalidCredentialsError: If the blob is not a JSON object
    """
    try:
        token_data = json.loads(token_blob)
    except (TypeError, ValueError) as e:
        raise InvalidCredentialsError(f"Malformed token blob: {e}") from e

    if not isinstance(token_data, dict):
        raise InvalidCredentialsError("Malformed token blob: expected a JSON object")
    return token_data


class TasksAuth:
    """
    OAuth2 helper for one application's client configuration.

    Usage:
        auth = TasksAuth.from_config(TasksConfig.from_env())
        url = auth.get_auth_code_url()
        token_blob = auth.exchange_code(code_from_redirect)
        credentials = auth.credentials_from_token(token_blob)
    """

    def __init__(self, client_config: Dict[str, Any], config: Optional[TasksConfig] = None):
        """
        Args:
            client_config: OAuth client configuration (contents of credentials.json)
            config: Scope and redirect settings (default: TasksConfig())
        """
        self._config = config or TasksConfig()
        self._client_config = client_config
        self._client_info = client_config.get('installed') or client_config.get('web') or {}
        self._flow = Flow.from_client_config(
            client_config,
            scopes=[self._config.scope],
            redirect_uri=self._config.redirect_uri
        )

    @classmethod
    def from_config(cls, config: TasksConfig) -> "TasksAuth":
        """Creates a TasksAuth from the client secrets file named in `config`."""
        return cls(load_client_config(config.credentials_path), config)

    @property
    def scope(self) -> str:
        return self._config.scope

    def get_auth_code_url(self, state: str = 'state-token') -> str:
        """
        Returns the URL a user visits to grant offline access to their tasks.

        Args:
            state: Opaque value echoed back on the redirect

        Returns:
            The authorization URL
        """
        url, _ = self._flow.authorization_url(access_type='offline', state=state)
        return url

    def exchange_code(self, code: str) -> str:
        """
        Exchanges an authorization code for a token blob.

        Args:
            code: The code from the OAuth redirect

        Returns:
            The token blob to store for the user

        Raises:
            InvalidCredentialsError: If the exchange is rejected
        """
        logger.info("Exchanging authorization code %s", sanitize_for_logging(code=code)['code'])
        try:
            self._flow.fetch_token(code=code)
        except Exception as e:
            raise InvalidCredentialsError(f"Authorization code exchange failed: {e}") from e
        return encode_token(self._flow.credentials)

    def authorize_local(self, port: int = 8080) -> str:
        """
        Runs the installed-app flow with a local redirect server (development only).

        Returns:
            The token blob to store for the user
        """
        flow = InstalledAppFlow.from_client_config(self._client_config, [self._config.scope])
        credentials = flow.run_local_server(port=port)
        return encode_token(credentials)

    def credentials_from_token(self, token_blob: Union[str, bytes]) -> Credentials:
        """
        Produces usable credentials from a stored token blob, refreshing them if expired.

        Client id, secret and token URI missing from the blob are taken from
        this application's client configuration.

        Args:
            token_blob: Token blob from exchange_code or authorize_local

        Returns:
            Valid google.oauth2 Credentials

        Raises:
            InvalidCredentialsError: If the blob is malformed, or expired and cannot be refreshed
            ScopeError: If the token was not granted the configured scope
        """
        token_data = decode_token(token_blob)
        token_data.setdefault('client_id', self._client_info.get('client_id'))
        token_data.setdefault('client_secret', self._client_info.get('client_secret'))
        token_data.setdefault('token_uri', self._client_info.get('token_uri', DEFAULT_TOKEN_URI))

        try:
            credentials = Credentials.from_authorized_user_info(token_data)
        except ValueError as e:
            raise InvalidCredentialsError(f"Incomplete token blob: {e}") from e

        self._check_scopes(credentials)

        if not credentials.valid:
            if not credentials.refresh_token:
                raise InvalidCredentialsError("Token expired and no refresh token is available")
            try:
                logger.info("Refreshing expired credentials")
                credentials.refresh(Request())
            except RefreshError as e:
                raise InvalidCredentialsError(f"Failed to refresh credentials: {e}") from e

        return credentials

    def _check_scopes(self, credentials: Credentials) -> None:
        if not credentials.scopes:
            return
        accepted = {self._config.scope}
        if self._config.scope == TASKS_READONLY_SCOPE:
            accepted.add(TASKS_SCOPE)
        if not accepted.intersection(credentials.scopes):
            raise ScopeError(f"Token was not granted the {self._config.scope} scope")

    def to_aiogoogle_creds(self, credentials: Credentials) -> Tuple[UserCreds, ClientCreds]:
        """
        Adapts credentials for an aiogoogle session.

        Returns:
            Tuple of (UserCreds, ClientCreds)
        """
        user_creds = UserCreds(
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            token_uri=credentials.token_uri,
            expires_at=credentials.expiry.isoformat() if credentials.expiry else None,
            scopes=[self._config.scope]
        )
        client_creds = ClientCreds(
            client_id=self._client_info.get('client_id'),
            client_secret=self._client_info.get('client_secret'),
            scopes=[self._config.scope]
        )
        return user_creds, client_creds


def get_tasks_service(credentials: Credentials):
    """Builds the Tasks API resource for one user's credentials."""
    return build("tasks", "v1", credentials=credentials, cache_discovery=False)
