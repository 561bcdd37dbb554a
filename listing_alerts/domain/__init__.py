"""Domain models for the listing alert engine."""

from .models import (
    PUBLISHED_STATUS,
    AlertFrequency,
    AlertRecord,
    ContactInfo,
    FilterSpec,
    ListingSnapshot,
    SavedSearch,
)

__all__ = [
    "PUBLISHED_STATUS",
    "AlertFrequency",
    "AlertRecord",
    "ContactInfo",
    "FilterSpec",
    "ListingSnapshot",
    "SavedSearch",
]
