class GoogleTasksClientError(Exception):
    """Base exception for all Google Tasks client errors."""
    pass


class AuthenticationError(GoogleTasksClientError):
    """Raised when authentication fails."""
    pass


class APIError(GoogleTasksClientError):
    """Raised when API calls fail."""
    pass


class ValidationError(GoogleTasksClientError):
    """Raised when input or response data fails validation."""
    pass
