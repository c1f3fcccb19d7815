"""
Entity-tag handling for refreshing tasks, task lists and collections.

A refresh sends the held entity's tag as an If-None-Match precondition.
The fetch returns None when the server answers 304 Not Modified, in which
case the held entity stays exactly as it was. Otherwise every field of the
held entity is replaced by the fresh representation.
"""

import logging
from dataclasses import fields
from typing import Optional, TypeVar

from ...utils.log_sanitizer import sanitize_opaque
from .constants import IF_NONE_MATCH_HEADER

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_precondition(request, etag: Optional[str]):
    """
    Adds an If-None-Match header to a prepared API request.

    Works for both googleapiclient HttpRequest and aiogoogle Request objects,
    which expose their headers as a mutable mapping.

    Args:
        request: The prepared request.
        etag: Entity tag to send, or None to send no precondition.

    Returns:
        The same request.
    """
    if etag:
        if request.headers is None:
            request.headers = {}
        request.headers[IF_NONE_MATCH_HEADER] = etag
    return request


def apply_refresh(current: T, fresh: Optional[T]) -> bool:
    """
    Replaces `current` in place with `fresh`.

    Args:
        current: The entity held by the caller.
        fresh: The newly fetched entity, or None when the server reported no change.

    Returns:
        True if `current` was replaced, False if it was left untouched.
    """
    if fresh is None:
        logger.debug("Entity not modified since %s", sanitize_opaque(getattr(current, "etag", None), "etag"))
        return False

    if type(fresh) is not type(current):
        raise TypeError(f"Cannot refresh {type(current).__name__} from {type(fresh).__name__}")

    for entity_field in fields(current):
        setattr(current, entity_field.name, getattr(fresh, entity_field.name))
    return True
