"""
Timestamp helpers.

All timestamps in noteferry are timezone-aware UTC datetimes truncated to
millisecond precision, serialized as ISO-8601 with a trailing 'Z'
(e.g. 2024-05-01T10:00:00.123Z). Millisecond truncation happens once, when a
value is parsed, so serializing and re-parsing never loses precision.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def truncate_to_millis(dt: datetime) -> datetime:
    """Normalize a datetime to UTC with millisecond precision."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def utc_now() -> datetime:
    """Current UTC time with millisecond precision."""
    return truncate_to_millis(datetime.now(timezone.utc))


def epoch_millis(dt: Optional[datetime] = None) -> int:
    """Milliseconds since the Unix epoch for dt (defaults to now)."""
    dt = dt or utc_now()
    return (truncate_to_millis(dt) - _EPOCH) // timedelta(milliseconds=1)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with milliseconds and a 'Z' suffix."""
    dt = truncate_to_millis(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp from the shapes found in exported note data.

    Accepts datetime objects, ISO-8601 strings (with 'Z', an offset or no
    zone at all) and numbers of milliseconds since the epoch.

    Args:
        value: The raw value

    Returns:
        A UTC datetime with millisecond precision, or None if the value
        cannot be interpreted as a point in time
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        try:
            return truncate_to_millis(value)
        except OverflowError:
            return None

    if isinstance(value, (int, float)):
        try:
            return _EPOCH + timedelta(milliseconds=int(value))
        except (OverflowError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            return truncate_to_millis(datetime.fromisoformat(text))
        except (ValueError, OverflowError):
            return None

    return None
