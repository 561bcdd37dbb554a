"""Duration parsing for digest window settings.

Accepts the short human form ("24h", "7d", "1d12h") and ISO-8601 durations
("P1D", "PT36H", "P7D").
"""

import re
from datetime import timedelta

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 604800}

_ISO_PATTERN = re.compile(
    r"^P(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)
_HUMAN_TOKEN = re.compile(r"(\d+)([smhdw])")


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""

    pass


def parse_duration(duration_str: str) -> int:
    """Parse a duration string to whole seconds.

    Examples:
        >>> parse_duration("24h")
        86400
        >>> parse_duration("P7D")
        604800
        >>> parse_duration("1d12h")
        129600

    Raises:
        DurationParseError: If the string is empty, malformed or zero
    """
    if not isinstance(duration_str, str) or not duration_str.strip():
        raise DurationParseError("Duration string cannot be empty")

    cleaned = re.sub(r"\s+", "", duration_str)

    if cleaned.upper().startswith("P"):
        total = _parse_iso8601(cleaned.upper())
    else:
        total = _parse_human(cleaned.lower())

    if total <= 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")
    return total


def parse_timedelta(duration_str: str) -> timedelta:
    """Parse a duration string into a ``timedelta``."""
    return timedelta(seconds=parse_duration(duration_str))


def _parse_iso8601(value: str) -> int:
    match = _ISO_PATTERN.match(value)
    if not match or value in ("P", "PT"):
        raise DurationParseError(
            f"Invalid ISO-8601 duration format: '{value}'. "
            "Expected format like 'P1D', 'P7D' or 'PT36H'"
        )

    parts = match.groupdict()
    total = 0.0
    total += int(parts["weeks"] or 0) * _UNIT_SECONDS["w"]
    total += int(parts["days"] or 0) * _UNIT_SECONDS["d"]
    total += int(parts["hours"] or 0) * _UNIT_SECONDS["h"]
    total += int(parts["minutes"] or 0) * _UNIT_SECONDS["m"]
    total += float(parts["seconds"] or 0)
    return int(total)


def _parse_human(value: str) -> int:
    tokens = _HUMAN_TOKEN.findall(value)
    if not tokens or "".join(num + unit for num, unit in tokens) != value:
        raise DurationParseError(
            f"Invalid duration format: '{value}'. "
            "Use digits followed by s, m, h, d or w (e.g. '24h', '7d', '1d12h')"
        )
    return sum(int(num) * _UNIT_SECONDS[unit] for num, unit in tokens)


def validate_duration_range(
    duration_seconds: int,
    min_seconds: int,
    max_seconds: int,
    label: str = "Duration",
) -> None:
    """Ensure a parsed duration lies within ``[min_seconds, max_seconds]``.

    Raises:
        DurationParseError: If the duration falls outside the range
    """
    if duration_seconds < min_seconds:
        raise DurationParseError(
            f"{label} too short: {humanize_seconds(duration_seconds)}. "
            f"Minimum is {humanize_seconds(min_seconds)}."
        )
    if duration_seconds > max_seconds:
        raise DurationParseError(
            f"{label} too long: {humanize_seconds(duration_seconds)}. "
            f"Maximum is {humanize_seconds(max_seconds)}."
        )


def humanize_seconds(seconds: int) -> str:
    """Render seconds in the largest whole unit ("2 days", "36 hours")."""
    for unit_name, unit_seconds in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= unit_seconds and seconds % unit_seconds == 0:
            count = seconds // unit_seconds
            return f"{count} {unit_name}{'s' if count != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"
