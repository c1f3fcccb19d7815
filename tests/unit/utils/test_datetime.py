import pytest
from datetime import datetime, date, timezone, timedelta
from unittest.mock import patch
from src.google_tasks_client.utils.datetime import (
    parse_rfc3339, format_rfc3339, format_date_rfc3339,
    current_datetime_utc, convert_datetime_to_local_timezone
)
from src.google_tasks_client.exceptions.tasks import MalformedTimestampError


class TestParseRfc3339:
    """Test RFC 3339 parsing."""

    def test_utc_with_millis(self):
        parsed = parse_rfc3339("2025-01-15T10:00:00.000Z")
        assert parsed == datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)

    def test_without_fraction(self):
        assert parse_rfc3339("2024-06-01T00:00:00Z") == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_offset(self):
        parsed = parse_rfc3339("2025-01-15T10:00:00+05:30")
        assert parsed.utcoffset() == timedelta(hours=5, minutes=30)
        assert parsed == datetime(2025, 1, 15, 4, 30, tzinfo=timezone.utc)

    def test_nanosecond_fraction_truncated(self):
        parsed = parse_rfc3339("2025-01-15T10:00:00.123456789Z")
        assert parsed.microsecond == 123456

    def test_lowercase_separators(self):
        assert parse_rfc3339("2025-01-15t10:00:00z").tzinfo is not None

    @pytest.mark.parametrize("value", [
        "",
        "2025-01-15",
        "2025-01-15T10:00:00",
        "2025-01-15 10:00:00Z",
        "2025-13-01T00:00:00Z",
        "2025-02-30T00:00:00Z",
        "not a timestamp",
    ])
    def test_malformed(self, value):
        with pytest.raises(MalformedTimestampError) as exc_info:
            parse_rfc3339(value, "task_9")
        assert exc_info.value.value == value
        assert exc_info.value.task_id == "task_9"
        assert "task_9" in str(exc_info.value)

    def test_none(self):
        with pytest.raises(MalformedTimestampError):
            parse_rfc3339(None)


class TestFormatting:
    """Test RFC 3339 formatting."""

    def test_format_aware(self):
        value = datetime(2025, 1, 15, 12, 30, 15, 999, tzinfo=timezone(timedelta(hours=-5)))
        assert format_rfc3339(value) == "2025-01-15T17:30:15Z"

    def test_format_naive_uses_local_zone(self):
        with patch('src.google_tasks_client.utils.datetime.tzlocal.get_localzone', return_value=timezone.utc):
            assert format_rfc3339(datetime(2025, 1, 15, 9, 0)) == "2025-01-15T09:00:00Z"

    def test_format_date(self):
        assert format_date_rfc3339(date(2025, 1, 20)) == "2025-01-20T00:00:00.000Z"

    def test_round_trip_instant(self):
        value = datetime(2025, 7, 4, 8, 15, tzinfo=timezone.utc)
        assert parse_rfc3339(format_rfc3339(value)) == value


class TestTimezones:
    """Test timezone helpers."""

    def test_current_datetime_is_utc(self):
        assert current_datetime_utc().utcoffset() == timedelta(0)

    def test_convert_to_local(self):
        local_zone = timezone(timedelta(hours=9))
        with patch('src.google_tasks_client.utils.datetime.tzlocal.get_localzone', return_value=local_zone):
            converted = convert_datetime_to_local_timezone(datetime(2025, 1, 15, 20, 0, tzinfo=timezone.utc))
        assert converted.day == 16
        assert converted.hour == 5
