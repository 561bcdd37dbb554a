"""Unit tests for the filter matching engine.

Covers:
- Each clause in isolation (equality, ranges, lower bounds, text, amenities)
- Inclusive bounds and missing listing fields
- Conjunction and monotonic relaxation
- evaluate() failed clause reporting
- Totality for malformed filters
"""

import pytest

from listing_alerts.domain.models import FilterSpec
from listing_alerts.matching import FilterMatcher, evaluate, matches
from tests.helpers import make_listing, spec


class TestUnconstrained:
    def test_empty_filter_matches_any_listing(self):
        assert matches(make_listing(), FilterSpec())

    def test_empty_filter_matches_sparse_listing(self):
        listing = make_listing(
            listing_type=None, city=None, area=None, price=None, size=None, bedrooms=None
        )
        assert matches(listing, FilterSpec())


class TestScenarios:
    def test_instant_match_scenario(self):
        listing = make_listing(city="Dhaka", price=4_500_000)
        assert matches(listing, spec(city="Dhaka", maxPrice=5_000_000))

    def test_instant_non_match_scenario(self):
        listing = make_listing(city="Dhaka", price=6_000_000)
        result = evaluate(listing, spec(city="Dhaka", maxPrice=5_000_000))
        assert result.is_match is False
        assert result.failed_clauses == ("price",)

    def test_amenities_require_every_tag(self):
        filter_spec = spec(amenities=["Parking", "Gym"])
        assert not matches(make_listing(amenities=["Parking"]), filter_spec)
        assert matches(make_listing(amenities=["Parking", "Gym", "Pool"]), filter_spec)

    def test_search_text_is_case_insensitive(self):
        filter_spec = spec(searchText="gulshan")
        assert matches(make_listing(title="Luxury Flat in Gulshan", area="Baridhara"), filter_spec)
        assert not matches(make_listing(title="Modern Home", area="Banani"), filter_spec)


class TestClauses:
    @pytest.mark.parametrize(
        "price,expected",
        [(100, True), (200, True), (150, True), (99.99, False), (200.01, False)],
    )
    def test_price_bounds_are_inclusive(self, price, expected):
        assert matches(make_listing(price=price), spec(minPrice=100, maxPrice=200)) is expected

    @pytest.mark.parametrize("size,expected", [(800, True), (799, False), (1500, True), (1501, False)])
    def test_area_bounds_use_listing_size(self, size, expected):
        assert matches(make_listing(size=size), spec(minArea=800, maxArea=1500)) is expected

    @pytest.mark.parametrize("bedrooms,expected", [(2, False), (3, True), (5, True)])
    def test_min_bedrooms_is_lower_bound(self, bedrooms, expected):
        assert matches(make_listing(bedrooms=bedrooms), spec(bedrooms=3)) is expected

    def test_min_bathrooms(self):
        assert matches(make_listing(bathrooms=2), spec(minBathrooms=2))
        assert not matches(make_listing(bathrooms=1), spec(minBathrooms=2))

    def test_equality_fields_are_exact(self):
        assert not matches(make_listing(city="Dhaka"), spec(city="dhaka"))
        assert not matches(make_listing(listing_type="rent"), spec(listingType="sale"))
        assert matches(make_listing(property_type="villa"), spec(propertyType="villa"))
        assert not matches(make_listing(property_type="villa"), spec(propertyType="apartment"))

    def test_search_text_matches_area_when_title_does_not(self):
        listing = make_listing(title="Quiet family home", area="Gulshan 2")
        assert matches(listing, spec(search="GULSHAN"))

    def test_only_one_price_bound(self):
        assert matches(make_listing(price=10), spec(maxPrice=100))
        assert not matches(make_listing(price=1000), spec(maxPrice=100))
        assert matches(make_listing(price=1000), spec(minPrice=100))


class TestMissingListingFields:
    @pytest.mark.parametrize(
        "listing_overrides,filter_fields,clause",
        [
            ({"price": None}, {"minPrice": 1}, "price"),
            ({"size": None}, {"maxArea": 5000}, "area"),
            ({"bedrooms": None}, {"bedrooms": 1}, "min_bedrooms"),
            ({"city": None}, {"city": "Dhaka"}, "city"),
            ({"title": "", "area": None}, {"search": "flat"}, "search_text"),
            ({"amenities": []}, {"amenities": ["Parking"]}, "amenities"),
        ],
    )
    def test_present_clause_fails_on_missing_field(self, listing_overrides, filter_fields, clause):
        result = evaluate(make_listing(**listing_overrides), spec(**filter_fields))
        assert result.is_match is False
        assert result.failed_clauses == (clause,)


class TestConjunction:
    FULL = {
        "listingType": "sale",
        "propertyType": "apartment",
        "city": "Dhaka",
        "minPrice": 4_000_000,
        "maxPrice": 5_000_000,
        "minArea": 1_000,
        "maxArea": 2_000,
        "bedrooms": 3,
        "bathrooms": 2,
        "search": "luxury",
        "amenities": ["Parking"],
    }

    def test_full_filter_matches(self):
        assert matches(make_listing(), spec(**self.FULL))

    @pytest.mark.parametrize("dropped", sorted(FULL))
    def test_removing_a_satisfied_constraint_keeps_the_match(self, dropped):
        relaxed = {key: value for key, value in self.FULL.items() if key != dropped}
        assert matches(make_listing(), spec(**relaxed))

    def test_evaluate_reports_every_failed_clause_in_order(self):
        listing = make_listing(city="Chittagong", price=9_000_000, amenities=[])
        result = evaluate(listing, spec(**self.FULL))
        assert result.failed_clauses == ("city", "price", "amenities")
        assert "city" in result.summary

    def test_matches_agrees_with_evaluate(self):
        listing = make_listing(bedrooms=1)
        filter_spec = spec(**self.FULL)
        assert matches(listing, filter_spec) == evaluate(listing, filter_spec).is_match


class TestTotality:
    @pytest.mark.parametrize(
        "raw",
        [
            {"minPrice": "abc"},
            {"maxPrice": "NaN"},
            {"bedrooms": True},
            {"amenities": 42},
            {"city": {"nested": "Dhaka"}},
            {"search": ["gulshan"]},
            {"unknown": "value"},
        ],
    )
    def test_malformed_values_leave_clause_unconstrained(self, raw):
        assert matches(make_listing(), spec(**raw)) is True

    def test_filter_matcher_wrapper(self):
        matcher = FilterMatcher()
        assert matcher.matches(make_listing(), spec(city="Dhaka"))
        assert matcher.evaluate(make_listing(), spec(city="Sylhet")).failed_clauses == ("city",)
