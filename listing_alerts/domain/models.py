"""Core domain models for saved searches, listings and contacts.

This module defines the data structures used throughout the engine:
- FilterSpec: user-authored matching criteria (value type)
- SavedSearch: a FilterSpec plus delivery preferences and dispatch state
- ListingSnapshot: read-only projection of a listing
- ContactInfo: how to reach a search owner
- AlertRecord: ledger entry for an instant alert already dispatched
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, FrozenSet, Iterable, Mapping, Optional

from pydantic import AliasChoices, BaseModel, Field, field_serializer, field_validator

from listing_alerts.utils.timestamps import ensure_utc

PUBLISHED_STATUS = "published"


class AlertFrequency(str, Enum):
    """How often a saved search notifies its owner."""

    NEVER = "never"
    INSTANT = "instant"
    DAILY = "daily"
    WEEKLY = "weekly"

    @property
    def is_periodic(self) -> bool:
        return self in (AlertFrequency.DAILY, AlertFrequency.WEEKLY)


def _coerce_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _coerce_number(value: Any) -> Optional[float]:
    # bool is an int subclass; "true" is not a price
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _coerce_tags(value: Any) -> Optional[FrozenSet[str]]:
    if isinstance(value, str):
        items: Iterable[Any] = [value]
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = value
    else:
        return None
    tags = frozenset(item.strip() for item in items if isinstance(item, str) and item.strip())
    return tags or None


class FilterSpec(BaseModel):
    """Matching criteria of a saved search. Every field is optional.

    Values come from users and are only partially structured, so validation
    never fails: a malformed value (``"abc"`` as a price, ``true`` as a
    bedroom count, a dict as a city) is stored as absent, which leaves its
    clause unconstrained. Unknown keys are ignored. The camelCase and legacy
    key names written by the web client are accepted alongside snake_case.
    """

    listing_type: Optional[str] = Field(
        None, validation_alias=AliasChoices("listing_type", "listingType")
    )
    property_type: Optional[str] = Field(
        None, validation_alias=AliasChoices("property_type", "propertyType")
    )
    city: Optional[str] = None
    min_price: Optional[float] = Field(None, validation_alias=AliasChoices("min_price", "minPrice"))
    max_price: Optional[float] = Field(None, validation_alias=AliasChoices("max_price", "maxPrice"))
    min_area: Optional[float] = Field(None, validation_alias=AliasChoices("min_area", "minArea"))
    max_area: Optional[float] = Field(None, validation_alias=AliasChoices("max_area", "maxArea"))
    min_bedrooms: Optional[float] = Field(
        None, validation_alias=AliasChoices("min_bedrooms", "minBedrooms", "bedrooms")
    )
    min_bathrooms: Optional[float] = Field(
        None, validation_alias=AliasChoices("min_bathrooms", "minBathrooms", "bathrooms")
    )
    search_text: Optional[str] = Field(
        None, validation_alias=AliasChoices("search_text", "searchText", "search")
    )
    amenities: Optional[FrozenSet[str]] = None

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("listing_type", "property_type", "city", mode="before")
    @classmethod
    def drop_blank_text(cls, v: Any) -> Optional[str]:
        return _coerce_text(v)

    @field_validator("search_text", mode="before")
    @classmethod
    def normalize_search_text(cls, v: Any) -> Optional[str]:
        text = _coerce_text(v)
        return text.strip() if text else None

    @field_validator(
        "min_price", "max_price", "min_area", "max_area", "min_bedrooms", "min_bathrooms",
        mode="before",
    )
    @classmethod
    def drop_non_numeric(cls, v: Any) -> Optional[float]:
        return _coerce_number(v)

    @field_validator("amenities", mode="before")
    @classmethod
    def normalize_amenities(cls, v: Any) -> Optional[FrozenSet[str]]:
        return _coerce_tags(v)

    @field_serializer("amenities")
    def serialize_amenities(self, v: Optional[FrozenSet[str]]):
        return sorted(v) if v is not None else None

    @classmethod
    def from_raw(cls, raw: Any) -> "FilterSpec":
        """Build a FilterSpec from a stored or user-supplied mapping.

        Anything that is not a mapping yields an unconstrained spec.
        """
        if isinstance(raw, FilterSpec):
            return raw
        if not isinstance(raw, Mapping):
            return cls()
        return cls.model_validate(dict(raw))

    def to_storage(self) -> dict:
        """Serialize to a JSON-ready dict with only the present fields."""
        return self.model_dump(mode="json", exclude_none=True)

    @property
    def is_unconstrained(self) -> bool:
        return not self.to_storage()


class ListingSnapshot(BaseModel):
    """Read-only projection of a listing consumed by the engine."""

    id: str
    title: str = ""
    status: str
    listing_type: Optional[str] = None
    property_type: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    price: Optional[float] = None
    size: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    amenities: FrozenSet[str] = Field(default_factory=frozenset)
    created_at: datetime
    slug: Optional[str] = None
    image_url: Optional[str] = None
    featured: bool = False

    model_config = {"frozen": True}

    @field_validator("created_at")
    @classmethod
    def created_at_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("amenities", mode="before")
    @classmethod
    def amenities_as_set(cls, v: Any) -> FrozenSet[str]:
        return _coerce_tags(v) or frozenset()

    @property
    def is_published(self) -> bool:
        return self.status == PUBLISHED_STATUS


class SavedSearch(BaseModel):
    """A user's stored filter plus delivery preference and dispatch state.

    ``last_alert_sent`` is written only by the dispatch engine and never moves
    backwards.
    """

    id: str
    owner_id: str
    name: str
    filter: FilterSpec = Field(default_factory=FilterSpec)
    frequency: AlertFrequency = AlertFrequency.NEVER
    active: bool = True
    last_alert_sent: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("filter", mode="before")
    @classmethod
    def coerce_filter(cls, v: Any) -> FilterSpec:
        return FilterSpec.from_raw(v)

    @field_validator("last_alert_sent", "created_at")
    @classmethod
    def timestamps_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class ContactInfo(BaseModel):
    """Delivery identity of a search owner."""

    owner_id: str
    email: str
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@", 1)[0]


class AlertRecord(BaseModel):
    """An instant alert already dispatched for a (search, listing) pair."""

    search_id: str
    listing_id: str
    sent_at: datetime

    @field_validator("sent_at")
    @classmethod
    def sent_at_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)
