"""Digest window computation."""

from datetime import datetime, timedelta
from typing import Optional

from listing_alerts.utils.timestamps import ensure_utc


def compute_window_start(
    last_alert_sent: Optional[datetime], now: datetime, default_period: timedelta
) -> datetime:
    """Return the exclusive lower bound of a search's digest window.

    A search that has been alerted before resumes where it left off, however
    long ago that was. A search never alerted looks back one default period.

    Example:
        >>> from datetime import timezone
        >>> now = datetime(2025, 1, 2, tzinfo=timezone.utc)
        >>> compute_window_start(None, now, timedelta(hours=24))
        datetime.datetime(2025, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if last_alert_sent is not None:
        return ensure_utc(last_alert_sent)
    return ensure_utc(now) - default_period
