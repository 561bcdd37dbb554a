"""Unit tests for domain models."""

import math
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from listing_alerts.domain.models import (
    AlertFrequency,
    ContactInfo,
    FilterSpec,
    ListingSnapshot,
    SavedSearch,
)


class TestFilterSpecFromRaw:
    def test_accepts_camel_case_and_legacy_keys(self):
        filter_spec = FilterSpec.from_raw(
            {
                "listingType": "sale",
                "propertyType": "apartment",
                "minPrice": "50000",
                "maxPrice": 150000,
                "minArea": 800,
                "maxArea": "1200.5",
                "bedrooms": 2,
                "bathrooms": "1",
                "search": "  gulshan ",
            }
        )
        assert filter_spec.listing_type == "sale"
        assert filter_spec.property_type == "apartment"
        assert filter_spec.min_price == 50000
        assert filter_spec.max_price == 150000
        assert filter_spec.min_area == 800
        assert filter_spec.max_area == 1200.5
        assert filter_spec.min_bedrooms == 2
        assert filter_spec.min_bathrooms == 1
        assert filter_spec.search_text == "gulshan"

    def test_accepts_snake_case_keys(self):
        filter_spec = FilterSpec.from_raw({"min_price": 10, "search_text": "lake"})
        assert filter_spec.min_price == 10
        assert filter_spec.search_text == "lake"

    def test_unknown_keys_are_ignored(self):
        assert FilterSpec.from_raw({"colour": "blue", "city": "Dhaka"}) == FilterSpec(city="Dhaka")

    @pytest.mark.parametrize("value", ["abc", "", True, False, None, [], {"v": 1}, "inf", math.nan])
    def test_malformed_numbers_become_absent(self, value):
        assert FilterSpec.from_raw({"minPrice": value}).min_price is None

    @pytest.mark.parametrize("value", [10**400, -(10**400)])
    def test_integers_too_large_for_float_become_absent(self, value):
        filter_spec = FilterSpec.from_raw({"minPrice": value, "city": "Dhaka"})
        assert filter_spec.min_price is None
        assert filter_spec.city == "Dhaka"

    @pytest.mark.parametrize("value", ["", "   ", 5, ["Dhaka"], None])
    def test_malformed_text_becomes_absent(self, value):
        assert FilterSpec.from_raw({"city": value}).city is None

    def test_single_amenity_string_becomes_set(self):
        assert FilterSpec.from_raw({"amenities": "Parking"}).amenities == frozenset({"Parking"})

    def test_blank_and_non_string_amenities_are_dropped(self):
        filter_spec = FilterSpec.from_raw({"amenities": ["Gym", " ", 3, None, "Pool "]})
        assert filter_spec.amenities == frozenset({"Gym", "Pool"})

    @pytest.mark.parametrize("value", [[], [""], [1, 2], "  ", 7])
    def test_empty_amenities_are_absent(self, value):
        assert FilterSpec.from_raw({"amenities": value}).amenities is None

    @pytest.mark.parametrize("raw", [None, "city=Dhaka", 42, ["city"]])
    def test_non_mapping_input_is_unconstrained(self, raw):
        assert FilterSpec.from_raw(raw).is_unconstrained

    def test_from_raw_passes_through_existing_spec(self):
        filter_spec = FilterSpec(city="Dhaka")
        assert FilterSpec.from_raw(filter_spec) is filter_spec


class TestFilterSpecStorage:
    def test_to_storage_keeps_only_present_fields(self):
        filter_spec = FilterSpec.from_raw({"city": "Dhaka", "amenities": ["Pool", "Gym"]})
        assert filter_spec.to_storage() == {"city": "Dhaka", "amenities": ["Gym", "Pool"]}

    def test_storage_form_rebuilds_same_spec(self):
        filter_spec = FilterSpec.from_raw(
            {"listingType": "rent", "minPrice": 5, "search": "lake", "amenities": ["Lift"]}
        )
        assert FilterSpec.from_raw(filter_spec.to_storage()) == filter_spec

    def test_spec_is_frozen(self):
        filter_spec = FilterSpec(city="Dhaka")
        with pytest.raises(ValidationError):
            filter_spec.city = "Sylhet"


class TestListingSnapshot:
    def test_naive_created_at_is_treated_as_utc(self):
        listing = ListingSnapshot(id="L1", status="published", created_at=datetime(2025, 1, 1, 9))
        assert listing.created_at.tzinfo == timezone.utc
        assert listing.created_at.hour == 9

    def test_amenities_become_frozenset(self):
        listing = ListingSnapshot(
            id="L1", status="published", created_at=datetime.now(timezone.utc), amenities=["A", "A"]
        )
        assert listing.amenities == frozenset({"A"})

    @pytest.mark.parametrize("status,expected", [("published", True), ("draft", False), ("pending", False)])
    def test_is_published(self, status, expected):
        listing = ListingSnapshot(id="L1", status=status, created_at=datetime.now(timezone.utc))
        assert listing.is_published is expected

    def test_snapshot_is_immutable(self):
        listing = ListingSnapshot(id="L1", status="draft", created_at=datetime.now(timezone.utc))
        with pytest.raises(ValidationError):
            listing.status = "published"


class TestSavedSearch:
    def test_filter_dict_is_coerced(self):
        search = SavedSearch(
            id="S1", owner_id="U1", name="Flats", filter={"maxPrice": "100"}, frequency="daily"
        )
        assert search.filter.max_price == 100
        assert search.frequency is AlertFrequency.DAILY

    def test_defaults(self):
        search = SavedSearch(id="S1", owner_id="U1", name="Flats")
        assert search.filter.is_unconstrained
        assert search.frequency is AlertFrequency.NEVER
        assert search.active is True
        assert search.last_alert_sent is None

    def test_invalid_frequency_rejected(self):
        with pytest.raises(ValidationError):
            SavedSearch(id="S1", owner_id="U1", name="Flats", frequency="hourly")


class TestAlertFrequency:
    @pytest.mark.parametrize(
        "frequency,periodic",
        [
            (AlertFrequency.DAILY, True),
            (AlertFrequency.WEEKLY, True),
            (AlertFrequency.INSTANT, False),
            (AlertFrequency.NEVER, False),
        ],
    )
    def test_is_periodic(self, frequency, periodic):
        assert frequency.is_periodic is periodic


class TestContactInfo:
    def test_display_name_falls_back_to_mailbox(self):
        assert ContactInfo(owner_id="U1", email="karim@example.com").display_name == "karim"
        assert ContactInfo(owner_id="U1", email="k@example.com", name="Karim").display_name == "Karim"
