import re
from datetime import datetime, date, time, timezone

import tzlocal

from ..exceptions.tasks import MalformedTimestampError

# RFC 3339 date-time: full date, "T", full time with optional fraction, required offset.
_RFC3339_PATTERN = re.compile(
    r'^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$'
)


def parse_rfc3339(value: str, task_id: str = None) -> datetime:
    """
    Parses an RFC 3339 timestamp as returned by the Tasks API.

    Fractional seconds of any precision are accepted and truncated to
    microseconds. A missing or unparsable value raises instead of falling
    back to the epoch.

    Args:
        value: The timestamp string, e.g. "2025-01-15T10:00:00.000Z".
        task_id: Optional identifier of the owning entity, for error reporting.

    Returns:
        A timezone-aware datetime.

    Raises:
        MalformedTimestampError: If the value is empty or not RFC 3339.
    """
    if not isinstance(value, str):
        raise MalformedTimestampError(value, task_id)

    match = _RFC3339_PATTERN.match(value.strip())
    if not match:
        raise MalformedTimestampError(value, task_id)

    day, clock, fraction, offset = match.groups()
    normalized = f"{day}T{clock}"
    if fraction:
        normalized += "." + fraction[:6].ljust(6, '0')
    normalized += "+00:00" if offset in ('Z', 'z') else offset

    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        # Pattern matched but the fields are out of range, e.g. month 13.
        raise MalformedTimestampError(value, task_id)


def format_rfc3339(date_time: datetime) -> str:
    """
    Formats a datetime as an RFC 3339 string in UTC with a "Z" suffix.
    Naive datetimes are taken to be in the local timezone.
    """
    if date_time.tzinfo is None:
        date_time = date_time.replace(tzinfo=tzlocal.get_localzone())
    utc = date_time.astimezone(timezone.utc).replace(microsecond=0, tzinfo=None)
    return utc.isoformat() + 'Z'


def format_date_rfc3339(value: date) -> str:
    """Formats a calendar date the way the Tasks API stores due dates (midnight UTC)."""
    return datetime.combine(value, time.min).isoformat() + '.000Z'


def current_datetime_utc() -> datetime:
    """Returns the current timezone-aware time in UTC."""
    return datetime.now(timezone.utc)


def convert_datetime_to_local_timezone(date_time: datetime) -> datetime:
    """
    Converts a given datetime object to a local-timezone-aware datetime.
    Args:
        date_time: The datetime object to be converted.

    Returns:
        A datetime object in the local timezone.
    """
    return date_time.astimezone(tzlocal.get_localzone())
