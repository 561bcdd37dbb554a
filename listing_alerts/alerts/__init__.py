"""Alert dispatch: instant alerts on publish and periodic digests.

This module provides:
- InstantAlertDispatcher: on_publish / on_publish_by_id
- DigestScheduler: run_digest(daily | weekly)
- The collaborator contracts the dispatchers depend on
- DispatchRunResult / SearchDispatchStats run reports
"""

from .interfaces import (
    AlertLedger,
    AlertStore,
    ContactDirectory,
    ListingSource,
    SavedSearchStore,
    StoreScope,
)
from .digest import DigestScheduler
from .exceptions import DispatchError, UnsupportedFrequencyError
from .instant import InstantAlertDispatcher
from .models import DispatchRunResult, SearchDispatchStats
from .window import compute_window_start

__all__ = [
    "AlertLedger",
    "AlertStore",
    "ContactDirectory",
    "ListingSource",
    "SavedSearchStore",
    "StoreScope",
    "DigestScheduler",
    "InstantAlertDispatcher",
    "DispatchError",
    "UnsupportedFrequencyError",
    "DispatchRunResult",
    "SearchDispatchStats",
    "compute_window_start",
]
