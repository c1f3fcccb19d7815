from .base import AuthenticationError


class InvalidCredentialsError(AuthenticationError):
    """Raised when a token blob is malformed, expired or cannot be refreshed."""
    pass


class ScopeError(AuthenticationError):
    """Raised when the token was not granted the configured OAuth scope."""
    pass
