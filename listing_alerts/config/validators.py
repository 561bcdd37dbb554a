"""Non-fatal configuration checks surfaced as warnings."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration

_DAY = 86400


def _window_seconds(section: Dict[str, Any], key: str) -> int:
    value = section.get(key)
    if not isinstance(value, str):
        return 0
    try:
        return parse_duration(value)
    except DurationParseError:
        # Hard errors are reported by model validation
        return 0


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """Inspect a raw configuration mapping for suspicious settings.

    Args:
        config_dict: Raw configuration dictionary (pre-validation)

    Returns:
        List of warning messages
    """
    messages = []

    digest = config_dict.get("digest") or {}
    if isinstance(digest, dict):
        daily = _window_seconds(digest, "daily_window")
        weekly = _window_seconds(digest, "weekly_window")
        if daily and daily < _DAY:
            messages.append(
                f"digest.daily_window ({digest['daily_window']}) is shorter than a day; "
                "first-time daily searches will miss older listings"
            )
        if weekly and weekly < 7 * _DAY:
            messages.append(
                f"digest.weekly_window ({digest['weekly_window']}) is shorter than a week; "
                "first-time weekly searches will miss older listings"
            )

    delivery = config_dict.get("delivery") or {}
    email = config_dict.get("email") or {}
    if isinstance(delivery, dict) and delivery.get("background") is False:
        retries = email.get("max_retries", 3) if isinstance(email, dict) else 3
        if isinstance(retries, int) and retries > 0:
            messages.append(
                "delivery.background is false: publish requests will wait for SMTP "
                f"delivery including up to {retries} retries"
            )

    links = config_dict.get("links") or {}
    if isinstance(links, dict):
        url = links.get("frontend_url")
        if isinstance(url, str) and "localhost" in url:
            messages.append(f"links.frontend_url points at localhost ({url})")

    return messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit each message through the warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
