"""Instant alerts: evaluate a newly published listing against instant searches."""

import logging
from datetime import datetime
from typing import Callable, Optional
from uuid import uuid4

from listing_alerts.domain.models import AlertFrequency, ListingSnapshot, SavedSearch
from listing_alerts.logging import get_logger
from listing_alerts.logging.context import log_context
from listing_alerts.matching.engine import FilterMatcher
from listing_alerts.notifications.base import NotificationSink
from listing_alerts.persistence.exceptions import RecordNotFoundError
from listing_alerts.utils.timestamps import utc_now

from .interfaces import StoreScope
from .models import (
    DISPATCHED,
    DUPLICATE,
    FAILED,
    NO_MATCH,
    DispatchRunResult,
    SearchDispatchStats,
)

logger = get_logger(__name__, component="instant")


class InstantAlertDispatcher:
    """
    Sends one alert per matching instant search when a listing goes live.

    Per matching search:
    1. Look up the owner's contact and claim the (search, listing) ledger
       entry in one transaction; an existing entry means a repeated publish
    2. Submit ``send_instant_match`` to the sink
    3. Conditionally advance ``last_alert_sent`` from the value read in the
       search list; a lost race is logged and left alone

    Nothing here raises to the caller: publishing a listing must succeed
    even if every alert fails.
    """

    def __init__(
        self,
        store_scope: StoreScope,
        sink: NotificationSink,
        matcher: Optional[FilterMatcher] = None,
        clock: Callable[[], datetime] = utc_now,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.store_scope = store_scope
        self.sink = sink
        self.matcher = matcher or FilterMatcher()
        self.clock = clock
        self.logger = logger_instance or logger

    def on_publish(self, listing: ListingSnapshot) -> DispatchRunResult:
        """Dispatch instant alerts for a listing that just became published.

        Returns:
            DispatchRunResult describing every matching search
        """
        result = DispatchRunResult(
            trigger=AlertFrequency.INSTANT.value,
            run_id=uuid4().hex,
            run_started_at=self.clock(),
        )

        with log_context(run_id=result.run_id, listing_id=listing.id):
            try:
                self._dispatch(listing, result)
            except Exception as e:
                self.logger.error(
                    f"Instant alert dispatch aborted: {e}",
                    exc_info=True,
                    extra={"event": "alert.instant.aborted", "error_type": type(e).__name__},
                )
                result.error_message = str(e)

        result.run_finished_at = self.clock()
        return result

    def on_publish_by_id(self, listing_id: str) -> DispatchRunResult:
        """Load a stored listing and run ``on_publish`` for it.

        A missing listing or a failed lookup is reported in the result.
        """
        try:
            with self.store_scope() as store:
                listing = store.listings.get_by_id(listing_id)
        except Exception as e:
            self.logger.error(
                f"Failed to load listing {listing_id}: {e}",
                exc_info=True,
                extra={"event": "alert.instant.load_failed", "listing_id": listing_id},
            )
            return self._unrun_result(str(e))

        if listing is None:
            self.logger.warning(
                f"Listing {listing_id} not found; no instant alerts",
                extra={"event": "alert.instant.listing_missing", "listing_id": listing_id},
            )
            return self._unrun_result(f"Listing {listing_id} not found")

        return self.on_publish(listing)

    def _unrun_result(self, error: str) -> DispatchRunResult:
        now = self.clock()
        return DispatchRunResult(
            trigger=AlertFrequency.INSTANT.value,
            run_id=uuid4().hex,
            run_started_at=now,
            run_finished_at=now,
            error_message=error,
        )

    def _dispatch(self, listing: ListingSnapshot, result: DispatchRunResult) -> None:
        if not listing.is_published:
            self.logger.info(
                f"Listing {listing.id} has status '{listing.status}'; no instant alerts",
                extra={"event": "alert.instant.skipped", "status": listing.status},
            )
            result.skipped = True
            return

        try:
            with self.store_scope() as store:
                searches = store.searches.list_active(AlertFrequency.INSTANT)
        except Exception as e:
            self.logger.error(
                f"Failed to load instant searches: {e}",
                exc_info=True,
                extra={"event": "alert.instant.load_failed"},
            )
            result.error_message = str(e)
            return

        self.logger.info(
            f"Evaluating listing {listing.id} against {len(searches)} instant searches",
            extra={"event": "alert.instant.started", "search_count": len(searches)},
        )

        for search in searches:
            result.searches_evaluated += 1
            with log_context(search_id=search.id):
                try:
                    stats = self._process_search(search, listing)
                except Exception as e:
                    self.logger.error(
                        f"Unexpected error dispatching search {search.id}: {e}",
                        exc_info=True,
                        extra={"event": "alert.failed", "error_type": type(e).__name__},
                    )
                    stats = SearchDispatchStats(search.id, FAILED, error_message=str(e))
            if stats.status != NO_MATCH:
                result.search_stats.append(stats)

        self.logger.info(
            f"Instant dispatch for listing {listing.id} complete: "
            f"{result.dispatched} dispatched, {result.duplicates} duplicates, "
            f"{result.failures} failed",
            extra={
                "event": "alert.instant.completed",
                "searches_evaluated": result.searches_evaluated,
                "dispatched": result.dispatched,
                "duplicates": result.duplicates,
                "failures": result.failures,
            },
        )

    def _process_search(self, search: SavedSearch, listing: ListingSnapshot) -> SearchDispatchStats:
        match = self.matcher.evaluate(listing, search.filter)
        if not match.is_match:
            self.logger.debug(
                f"Search {search.id} {match.summary}",
                extra={"event": "alert.no_match", "failed_clauses": list(match.failed_clauses)},
            )
            return SearchDispatchStats(search.id, NO_MATCH)

        now = self.clock()
        try:
            with self.store_scope() as store:
                contact = store.contacts.get_contact(search.owner_id)
                claimed = store.ledger.claim(search.id, listing.id, now)
        except RecordNotFoundError as e:
            self.logger.warning(
                f"No contact for owner {search.owner_id} of search {search.id}: {e}",
                extra={"event": "alert.contact_missing", "owner_id": search.owner_id},
            )
            return SearchDispatchStats(search.id, FAILED, error_message=str(e))

        if not claimed:
            self.logger.info(
                f"Instant alert for search {search.id} and listing {listing.id} already sent",
                extra={"event": "alert.duplicate"},
            )
            return SearchDispatchStats(search.id, DUPLICATE)

        try:
            notification = self.sink.send_instant_match(
                contact, listing, search.name, search_id=search.id
            )
        except Exception as e:
            self.logger.error(
                f"Sink rejected instant alert for search {search.id}: {e}",
                exc_info=True,
                extra={"event": "alert.sink_error", "error_type": type(e).__name__},
            )
            return SearchDispatchStats(search.id, FAILED, error_message=str(e))

        stats = SearchDispatchStats(
            search.id,
            DISPATCHED,
            listing_ids=(listing.id,),
            notification_status=notification.status if notification else None,
        )

        try:
            with self.store_scope() as store:
                updated = store.searches.update_last_alert_sent(
                    search.id, search.last_alert_sent, now
                )
        except Exception as e:
            self.logger.error(
                f"Failed to record last_alert_sent for search {search.id}: {e}",
                exc_info=True,
                extra={"event": "alert.store_error", "error_type": type(e).__name__},
            )
            stats.error_message = str(e)
        else:
            if not updated:
                self.logger.info(
                    f"last_alert_sent of search {search.id} changed concurrently; left as is",
                    extra={"event": "alert.cas_conflict"},
                )

        self.logger.info(
            f"Instant alert dispatched for search {search.id}",
            extra={
                "event": "alert.dispatched",
                "owner_id": search.owner_id,
                "notification_status": stats.notification_status,
            },
        )
        return stats
