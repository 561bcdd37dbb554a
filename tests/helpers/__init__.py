"""Test helper utilities for the listing alert engine tests."""

from .factories import (
    BASE_TIME,
    FixedClock,
    InMemoryBackend,
    RecordingSink,
    make_contact,
    make_listing,
    make_search,
    spec,
)

__all__ = [
    "BASE_TIME",
    "FixedClock",
    "InMemoryBackend",
    "RecordingSink",
    "make_contact",
    "make_listing",
    "make_search",
    "spec",
]
