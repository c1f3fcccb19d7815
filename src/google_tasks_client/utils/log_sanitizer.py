"""
Log sanitization utilities to prevent task content and credentials from leaking into logs.

Task titles and notes are user-written text, and entity tags, page tokens and
OAuth tokens are opaque values that have no business in a log file verbatim.
"""

import re
from typing import Optional


def sanitize_text(text: Optional[str], max_preview_length: int = 20) -> str:
    """
    Sanitize free text (task or task list title) for logging.

    Args:
        text: Text to sanitize
        max_preview_length: Maximum characters to show

    Returns:
        Sanitized text representation

    Example:
        "Buy groceries for the week" -> "'Buy groceries for th...' (26 chars)"
    """
    if not text:
        return "[empty]"

    # Collapse control characters so one log record stays on one line
    flattened = re.sub(r'[\r\n\t\x00-\x1f\x7f]+', ' ', text)

    preview = flattened[:max_preview_length]
    if len(flattened) > max_preview_length:
        preview += "..."

    return f"'{preview}' ({len(text)} chars)"


def sanitize_notes(notes: Optional[str]) -> str:
    """
    Sanitize task notes for logging. Only the size is kept.

    Args:
        notes: Notes to sanitize

    Returns:
        Sanitized notes representation
    """
    if not notes:
        return "[no-notes]"
    return f"[notes] ({len(notes)} chars)"


def sanitize_opaque(value: Optional[str], label: str) -> str:
    """
    Sanitize an opaque server value (entity tag, page token) for logging.

    Args:
        value: The opaque value
        label: Short label naming the kind of value

    Returns:
        Sanitized representation showing only the head and tail
    """
    if not value:
        return f"[no-{label}]"

    value = value.strip('"')
    if len(value) <= 12:
        return f"[{label}: {value}]"
    return f"[{label}: {value[:6]}...{value[-4:]}]"


def sanitize_token(token: Optional[str]) -> str:
    """
    Sanitize an OAuth access or refresh token. Nothing of the token is kept.

    Args:
        token: The token

    Returns:
        Sanitized token representation
    """
    if not token:
        return "[no-token]"
    return f"[token] ({len(token)} chars)"


def sanitize_for_logging(**kwargs) -> dict:
    """
    Sanitize multiple fields for logging in one call.

    Args:
        **kwargs: Fields to sanitize (title, notes, etag, page_token, token, etc.)

    Returns:
        Dictionary with sanitized values
    """
    sanitized = {}

    for key, value in kwargs.items():
        if key == 'title':
            sanitized[key] = sanitize_text(value) if value else None
        elif key == 'notes':
            sanitized[key] = sanitize_notes(value)
        elif key in ('etag', 'if_none_match'):
            sanitized[key] = sanitize_opaque(value, 'etag')
        elif key == 'page_token':
            sanitized[key] = sanitize_opaque(value, 'page-token')
        elif key in ('token', 'access_token', 'refresh_token', 'code'):
            sanitized[key] = sanitize_token(value)
        else:
            # Identifiers, flags and counts are not sensitive
            sanitized[key] = value

    return sanitized
