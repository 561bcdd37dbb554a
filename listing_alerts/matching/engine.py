"""Filter matching engine for evaluating listings against saved searches.

A FilterSpec is a conjunction of independent clauses. An absent filter field
leaves its clause unconstrained; a present clause whose listing field is
missing rejects the listing.

The engine is pure: no I/O, no logging, no shared state. Callers log the
``failed_clauses`` of a MatchResult when they need to explain a rejection.
"""

from typing import Callable, List, Optional, Tuple

from listing_alerts.domain.models import FilterSpec, ListingSnapshot

from .models import MatchResult

Clause = Tuple[str, Callable[[ListingSnapshot, FilterSpec], bool]]


def _within(value: Optional[float], low: Optional[float], high: Optional[float]) -> bool:
    if low is None and high is None:
        return True
    if value is None:
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def _at_least(value: Optional[float], bound: Optional[float]) -> bool:
    if bound is None:
        return True
    return value is not None and value >= bound


def _equals(value: Optional[str], expected: Optional[str]) -> bool:
    return expected is None or value == expected


def _contains_text(listing: ListingSnapshot, needle: Optional[str]) -> bool:
    if needle is None:
        return True
    needle = needle.casefold()
    for haystack in (listing.title, listing.area):
        if haystack and needle in haystack.casefold():
            return True
    return False


CLAUSES: List[Clause] = [
    ("listing_type", lambda listing, spec: _equals(listing.listing_type, spec.listing_type)),
    ("property_type", lambda listing, spec: _equals(listing.property_type, spec.property_type)),
    ("city", lambda listing, spec: _equals(listing.city, spec.city)),
    ("min_bedrooms", lambda listing, spec: _at_least(listing.bedrooms, spec.min_bedrooms)),
    ("min_bathrooms", lambda listing, spec: _at_least(listing.bathrooms, spec.min_bathrooms)),
    ("price", lambda listing, spec: _within(listing.price, spec.min_price, spec.max_price)),
    ("area", lambda listing, spec: _within(listing.size, spec.min_area, spec.max_area)),
    ("search_text", lambda listing, spec: _contains_text(listing, spec.search_text)),
    ("amenities", lambda listing, spec: spec.amenities is None or spec.amenities <= listing.amenities),
]


def evaluate(listing: ListingSnapshot, filter_spec: FilterSpec) -> MatchResult:
    """Evaluate every clause and report the ones that failed.

    Args:
        listing: Listing to test
        filter_spec: Saved search criteria

    Returns:
        MatchResult with the decision and the failed clause names
    """
    failed = tuple(name for name, clause in CLAUSES if not clause(listing, filter_spec))
    return MatchResult(is_match=not failed, failed_clauses=failed)


def matches(listing: ListingSnapshot, filter_spec: FilterSpec) -> bool:
    """Return True if the listing satisfies every present clause."""
    return all(clause(listing, filter_spec) for _, clause in CLAUSES)


class FilterMatcher:
    """Callable wrapper so dispatchers can take the matcher as a dependency."""

    def matches(self, listing: ListingSnapshot, filter_spec: FilterSpec) -> bool:
        return matches(listing, filter_spec)

    def evaluate(self, listing: ListingSnapshot, filter_spec: FilterSpec) -> MatchResult:
        return evaluate(listing, filter_spec)
