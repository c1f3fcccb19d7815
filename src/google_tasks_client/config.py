import os
from dataclasses import dataclass

TASKS_SCOPE = 'https://www.googleapis.com/auth/tasks'
TASKS_READONLY_SCOPE = 'https://www.googleapis.com/auth/tasks.readonly'

CREDENTIALS_PATH = 'credentials.json'
TOKEN_PATH = 'token.json'
REDIRECT_URI = 'http://localhost:8080/'


@dataclass
class TasksConfig:
    """
    Configuration for an OAuth client of the Tasks API.
    Args:
        credentials_path: Path to the OAuth client secrets file (credentials.json).
        scope: OAuth scope requested for user tokens.
        token_path: Where example scripts keep a user's token blob.
        redirect_uri: Redirect URI registered for the OAuth client.
    """
    credentials_path: str = CREDENTIALS_PATH
    scope: str = TASKS_SCOPE
    token_path: str = TOKEN_PATH
    redirect_uri: str = REDIRECT_URI

    def __post_init__(self):
        if self.scope not in (TASKS_SCOPE, TASKS_READONLY_SCOPE):
            raise ValueError(f"Unsupported Tasks scope: {self.scope}")

    @classmethod
    def from_env(cls, prefix: str = "GOOGLE_") -> "TasksConfig":
        """
        Builds a configuration from environment variables, falling back to defaults.

        Reads GOOGLE_CREDENTIALS_PATH, GOOGLE_TASKS_SCOPE, GOOGLE_TOKEN_PATH
        and GOOGLE_REDIRECT_URI.
        """
        return cls(
            credentials_path=os.getenv(f"{prefix}CREDENTIALS_PATH", CREDENTIALS_PATH),
            scope=os.getenv(f"{prefix}TASKS_SCOPE", TASKS_SCOPE),
            token_path=os.getenv(f"{prefix}TOKEN_PATH", TOKEN_PATH),
            redirect_uri=os.getenv(f"{prefix}REDIRECT_URI", REDIRECT_URI),
        )
