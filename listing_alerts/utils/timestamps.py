"""Timestamp utilities for UTC handling and datetime storage.

This module provides utilities for working with timestamps in UTC:
- Getting current UTC time
- Converting timezone-naive to timezone-aware UTC
- Formatting timestamps for storage, logs and display
- Parsing stored timestamps back into datetimes
"""

from datetime import datetime, timezone
from typing import Optional

# Fixed-width storage format; lexicographic order equals chronological order.
STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC time with timezone info

    Example:
        >>> now = utc_now()
        >>> now.tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    If the datetime is timezone-naive, it's treated as UTC.
    If the datetime has a different timezone, it's converted to UTC.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_storage(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for database storage.

    Args:
        dt: Datetime to format (naive values are treated as UTC)

    Returns:
        Fixed-width ISO 8601 string with microseconds and 'Z' suffix, or None
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORAGE_FORMAT)


def from_storage(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp string back to a UTC datetime.

    Accepts values with or without microseconds.

    Args:
        value: Stored ISO 8601 string

    Returns:
        Timezone-aware datetime in UTC or None
    """
    if value is None or value == "":
        return None

    value = value.rstrip("Z")
    try:
        dt = datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(value, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def format_timestamp(dt: datetime, include_microseconds: bool = False) -> str:
    """Format a datetime as ISO 8601 string in UTC.

    Args:
        dt: Datetime to format
        include_microseconds: Whether to include microseconds in output

    Returns:
        ISO 8601 formatted string with 'Z' suffix

    Example:
        >>> from datetime import datetime, timezone
        >>> dt = datetime(2025, 11, 4, 12, 0, 0, tzinfo=timezone.utc)
        >>> format_timestamp(dt)
        '2025-11-04T12:00:00Z'
    """
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return ""

    if include_microseconds:
        return dt_utc.strftime(STORAGE_FORMAT)
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%SZ")


def format_timestamp_for_log(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for structured logging (None passes through)."""
    if dt is None:
        return None
    return format_timestamp(dt, include_microseconds=False)
