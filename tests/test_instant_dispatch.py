"""Unit tests for InstantAlertDispatcher.

Uses the in-memory backend so every failure mode can be simulated:
- Match / non-match scenarios and last_alert_sent bookkeeping
- Unpublished listings
- Duplicate publish events
- Per-search failure isolation (sink, contact lookup, store)
- Lost compare-and-swap
"""

import logging
from datetime import timedelta

import pytest

from listing_alerts.alerts import InstantAlertDispatcher
from listing_alerts.domain.models import AlertFrequency
from tests.helpers import (
    BASE_TIME,
    FixedClock,
    InMemoryBackend,
    RecordingSink,
    make_contact,
    make_listing,
    make_search,
)


@pytest.fixture
def backend():
    backend = InMemoryBackend()
    backend.add_contact(make_contact("U1"))
    backend.add_contact(make_contact("U2", name="Karim"))
    return backend


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def clock():
    return FixedClock(BASE_TIME + timedelta(minutes=5))


@pytest.fixture
def dispatcher(backend, sink, clock):
    return InstantAlertDispatcher(store_scope=backend.scope, sink=sink, clock=clock)


def events(caplog):
    return [getattr(record, "event", None) for record in caplog.records]


class TestMatching:
    def test_match_dispatches_once_and_sets_last_alert_sent(self, backend, sink, clock, dispatcher):
        backend.add_search(make_search("S1", filter={"city": "Dhaka", "maxPrice": 5_000_000}))
        listing = make_listing(city="Dhaka", price=4_500_000)

        result = dispatcher.on_publish(listing)

        assert len(sink.instant) == 1
        contact, sent_listing, search_name = sink.instant[0]
        assert contact.owner_id == "U1"
        assert sent_listing == listing
        assert search_name == "Search S1"
        assert result.dispatched == 1
        assert result.dispatched_search_ids == ["S1"]
        assert backend.searches["S1"].last_alert_sent == clock.now

    def test_non_match_sends_nothing(self, backend, sink, dispatcher):
        backend.add_search(make_search("S1", filter={"city": "Dhaka", "maxPrice": 5_000_000}))

        result = dispatcher.on_publish(make_listing(city="Dhaka", price=6_000_000))

        assert sink.instant == []
        assert result.searches_evaluated == 1
        assert result.search_stats == []
        assert backend.searches["S1"].last_alert_sent is None

    def test_only_active_instant_searches_are_evaluated(self, backend, sink, dispatcher):
        backend.add_search(make_search("S1"))
        backend.add_search(make_search("S2", frequency=AlertFrequency.DAILY))
        backend.add_search(make_search("S3", active=False))
        backend.add_search(make_search("S4", frequency=AlertFrequency.NEVER))

        result = dispatcher.on_publish(make_listing())

        assert result.searches_evaluated == 1
        assert [name for _, _, name in sink.instant] == ["Search S1"]

    def test_each_matching_search_gets_its_own_alert(self, backend, sink, dispatcher):
        backend.add_search(make_search("S1", owner_id="U1"))
        backend.add_search(make_search("S2", owner_id="U2", filter={"amenities": ["Parking"]}))
        backend.add_search(make_search("S3", owner_id="U2", filter={"city": "Sylhet"}))

        result = dispatcher.on_publish(make_listing())

        assert sorted(result.dispatched_search_ids) == ["S1", "S2"]
        assert sorted(contact.owner_id for contact, _, _ in sink.instant) == ["U1", "U2"]


class TestUnpublished:
    @pytest.mark.parametrize("status", ["draft", "pending", "rejected"])
    def test_unpublished_listing_is_not_evaluated(self, backend, sink, dispatcher, status):
        backend.add_search(make_search("S1", filter={}))

        result = dispatcher.on_publish(make_listing(status=status))

        assert result.skipped is True
        assert backend.list_active_calls == 0
        assert sink.instant == []


class TestIdempotency:
    def test_repeated_publish_does_not_resend(self, backend, sink, clock, dispatcher):
        backend.add_search(make_search("S1"))
        listing = make_listing()

        dispatcher.on_publish(listing)
        clock.advance(seconds=30)
        second = dispatcher.on_publish(listing)

        assert len(sink.instant) == 1
        assert second.duplicates == 1
        assert second.dispatched == 0

    def test_different_listing_still_dispatches(self, backend, sink, clock, dispatcher):
        backend.add_search(make_search("S1"))

        dispatcher.on_publish(make_listing("L1"))
        clock.advance(minutes=1)
        dispatcher.on_publish(make_listing("L2"))

        assert [listing.id for _, listing, _ in sink.instant] == ["L1", "L2"]
        assert backend.searches["S1"].last_alert_sent == clock.now


class TestFailureIsolation:
    def test_sink_error_does_not_stop_next_search(self, backend, clock):
        sink = RecordingSink(fail_for={"Search S1"})
        dispatcher = InstantAlertDispatcher(store_scope=backend.scope, sink=sink, clock=clock)
        backend.add_search(make_search("S1"))
        backend.add_search(make_search("S2", owner_id="U2"))

        result = dispatcher.on_publish(make_listing())

        assert result.failures == 1
        assert result.dispatched_search_ids == ["S2"]
        assert backend.searches["S1"].last_alert_sent is None
        assert backend.searches["S2"].last_alert_sent == clock.now

    def test_missing_contact_is_isolated_and_not_claimed(self, backend, sink, dispatcher, caplog):
        backend.add_search(make_search("S1", owner_id="ghost"))
        backend.add_search(make_search("S2", owner_id="U2"))
        listing = make_listing()

        with caplog.at_level(logging.WARNING):
            result = dispatcher.on_publish(listing)

        assert result.failures == 1
        assert result.dispatched_search_ids == ["S2"]
        assert "alert.contact_missing" in events(caplog)
        assert ("S1", listing.id) not in backend.alerts

        backend.add_contact(make_contact("ghost"))
        retry = dispatcher.on_publish(listing)
        assert retry.dispatched_search_ids == ["S1"]

    def test_search_load_failure_is_reported_not_raised(self, backend, sink, dispatcher):
        backend.fail_list_active = True

        result = dispatcher.on_publish(make_listing())

        assert result.error_message == "database unavailable"
        assert result.had_errors
        assert sink.instant == []

    def test_store_error_after_send_keeps_dispatch(self, backend, sink, dispatcher):
        backend.add_search(make_search("S1"))
        backend.fail_updates = True

        result = dispatcher.on_publish(make_listing())

        assert result.dispatched == 1
        assert result.search_stats[0].error_message == "write failed"
        assert len(sink.instant) == 1


class TestCompareAndSwap:
    def test_lost_cas_is_logged_and_batch_continues(self, backend, sink, dispatcher, caplog):
        backend.add_search(make_search("S1"))
        backend.add_search(make_search("S2", owner_id="U2"))
        backend.force_cas_conflict = True

        with caplog.at_level(logging.INFO):
            result = dispatcher.on_publish(make_listing())

        assert result.dispatched == 2
        assert events(caplog).count("alert.cas_conflict") == 2

    def test_last_alert_sent_never_moves_backwards(self, backend, sink, clock, dispatcher):
        later = clock.now + timedelta(hours=3)
        backend.add_search(make_search("S1", last_alert_sent=later))

        dispatcher.on_publish(make_listing())

        assert backend.searches["S1"].last_alert_sent == later


class TestOnPublishById:
    def test_loads_and_dispatches(self, backend, sink, dispatcher):
        backend.add_search(make_search("S1"))
        backend.add_listing(make_listing("L7"))

        result = dispatcher.on_publish_by_id("L7")

        assert result.dispatched == 1
        assert sink.instant[0][1].id == "L7"

    def test_missing_listing_is_reported(self, backend, sink, dispatcher):
        result = dispatcher.on_publish_by_id("nope")

        assert result.error_message == "Listing nope not found"
        assert sink.instant == []
