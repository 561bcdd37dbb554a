"""Periodic digests: batch the listings each daily/weekly search missed."""

import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Union
from uuid import uuid4

from listing_alerts.config.models import DigestConfig
from listing_alerts.domain.models import AlertFrequency, ListingSnapshot, SavedSearch
from listing_alerts.logging import get_logger
from listing_alerts.logging.context import log_context
from listing_alerts.matching.engine import FilterMatcher
from listing_alerts.notifications.base import NotificationSink
from listing_alerts.persistence.exceptions import RecordNotFoundError
from listing_alerts.utils.timestamps import format_timestamp_for_log, utc_now

from .exceptions import UnsupportedFrequencyError
from .interfaces import StoreScope
from .models import (
    CONFLICT,
    DISPATCHED,
    FAILED,
    NO_MATCH,
    DispatchRunResult,
    SearchDispatchStats,
)
from .window import compute_window_start

logger = get_logger(__name__, component="digest")


def _periodic_frequency(frequency: Union[AlertFrequency, str]) -> AlertFrequency:
    try:
        value = AlertFrequency(frequency)
    except ValueError:
        value = None
    if value is None or not value.is_periodic:
        raise UnsupportedFrequencyError(
            f"run_digest supports 'daily' and 'weekly', got {frequency!r}"
        )
    return value


class DigestScheduler:
    """
    Runs the daily or weekly digest over every active search of that frequency.

    Per search:
    1. Window starts at ``last_alert_sent``, or one default period before the
       run when the search was never alerted
    2. Published listings created after the window start are matched against
       the search filter
    3. With at least one match, ``last_alert_sent`` is advanced to the run
       time by compare-and-swap before anything is sent; only the run that
       wins the swap sends the digest
    4. Without matches the search is left untouched, so its window keeps
       growing until something matches

    A run never raises for per-search problems; they are logged and counted.
    """

    def __init__(
        self,
        store_scope: StoreScope,
        sink: NotificationSink,
        digest_config: Optional[DigestConfig] = None,
        matcher: Optional[FilterMatcher] = None,
        clock: Callable[[], datetime] = utc_now,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.store_scope = store_scope
        self.sink = sink
        self.digest_config = digest_config or DigestConfig()
        self.matcher = matcher or FilterMatcher()
        self.clock = clock
        self.logger = logger_instance or logger
        self._locks = {
            AlertFrequency.DAILY: threading.Lock(),
            AlertFrequency.WEEKLY: threading.Lock(),
        }

    def run_digest(self, frequency: Union[AlertFrequency, str]) -> DispatchRunResult:
        """Dispatch the digest for one periodic frequency.

        Args:
            frequency: ``daily`` or ``weekly``

        Returns:
            DispatchRunResult with per-search outcomes

        Raises:
            UnsupportedFrequencyError: For any other frequency (a ValueError)
        """
        frequency = _periodic_frequency(frequency)
        default_period = self.digest_config.window_for(frequency)

        result = DispatchRunResult(
            trigger=frequency.value,
            run_id=uuid4().hex,
            run_started_at=self.clock(),
        )

        with log_context(run_id=result.run_id, frequency=frequency.value):
            lock = self._locks[frequency]
            if not lock.acquire(blocking=False):
                self.logger.warning(
                    f"{frequency.value} digest skipped: previous run still in progress",
                    extra={"event": "digest.run.skipped", "reason": "lock_held"},
                )
                result.skipped = True
                result.run_finished_at = self.clock()
                return result

            try:
                self._run(frequency, default_period, result)
            except Exception as e:
                self.logger.error(
                    f"{frequency.value} digest aborted: {e}",
                    exc_info=True,
                    extra={"event": "digest.run.aborted", "error_type": type(e).__name__},
                )
                result.error_message = str(e)
            finally:
                lock.release()

            result.run_finished_at = self.clock()
            self.logger.info(
                f"{frequency.value} digest run completed: {result.dispatched} dispatched, "
                f"{result.conflicts} conflicts, {result.failures} failed",
                extra={
                    "event": "digest.run.completed",
                    "duration_ms": int(result.duration_seconds * 1000),
                    "searches_evaluated": result.searches_evaluated,
                    "dispatched": result.dispatched,
                    "conflicts": result.conflicts,
                    "failures": result.failures,
                },
            )
        return result

    def _run(
        self, frequency: AlertFrequency, default_period: timedelta, result: DispatchRunResult
    ) -> None:
        # One timestamp per run: window arithmetic and the value written back
        now = self.clock()

        try:
            with self.store_scope() as store:
                searches = store.searches.list_active(frequency)
        except Exception as e:
            self.logger.error(
                f"Failed to load {frequency.value} searches: {e}",
                exc_info=True,
                extra={"event": "digest.load_failed"},
            )
            result.error_message = str(e)
            return

        self.logger.info(
            f"{frequency.value} digest run started for {len(searches)} searches",
            extra={"event": "digest.run.started", "search_count": len(searches)},
        )

        candidates_by_start: Dict[datetime, List[ListingSnapshot]] = {}

        for search in searches:
            result.searches_evaluated += 1
            with log_context(search_id=search.id):
                try:
                    stats = self._process_search(
                        search, frequency, now, default_period, candidates_by_start
                    )
                except Exception as e:
                    self.logger.error(
                        f"Unexpected error in digest for search {search.id}: {e}",
                        exc_info=True,
                        extra={"event": "alert.failed", "error_type": type(e).__name__},
                    )
                    stats = SearchDispatchStats(search.id, FAILED, error_message=str(e))
            if stats.status != NO_MATCH:
                result.search_stats.append(stats)

    def _candidates(
        self, window_start: datetime, cache: Dict[datetime, List[ListingSnapshot]]
    ) -> List[ListingSnapshot]:
        if window_start not in cache:
            with self.store_scope() as store:
                cache[window_start] = store.listings.get_published_since(window_start)
        return cache[window_start]

    def _process_search(
        self,
        search: SavedSearch,
        frequency: AlertFrequency,
        now: datetime,
        default_period: timedelta,
        cache: Dict[datetime, List[ListingSnapshot]],
    ) -> SearchDispatchStats:
        window_start = compute_window_start(search.last_alert_sent, now, default_period)
        candidates = self._candidates(window_start, cache)

        matched = [
            listing
            for listing in candidates
            if listing.is_published
            and window_start < listing.created_at <= now
            and self.matcher.matches(listing, search.filter)
        ]
        matched.sort(key=lambda listing: listing.created_at, reverse=True)

        if not matched:
            self.logger.debug(
                f"No new matches for search {search.id} since "
                f"{format_timestamp_for_log(window_start)}",
                extra={"event": "alert.no_match", "candidate_count": len(candidates)},
            )
            return SearchDispatchStats(search.id, NO_MATCH)

        try:
            with self.store_scope() as store:
                contact = store.contacts.get_contact(search.owner_id)
                claimed = store.searches.update_last_alert_sent(
                    search.id, search.last_alert_sent, now
                )
        except RecordNotFoundError as e:
            self.logger.warning(
                f"No contact for owner {search.owner_id} of search {search.id}: {e}",
                extra={"event": "alert.contact_missing", "owner_id": search.owner_id},
            )
            return SearchDispatchStats(search.id, FAILED, error_message=str(e))

        if not claimed:
            self.logger.info(
                f"Search {search.id} was advanced by another run; digest not sent",
                extra={
                    "event": "alert.cas_conflict",
                    "expected_last_alert_sent": format_timestamp_for_log(search.last_alert_sent),
                },
            )
            return SearchDispatchStats(search.id, CONFLICT)

        listing_ids = tuple(listing.id for listing in matched)
        try:
            notification = self.sink.send_digest(
                contact, matched, search.name, search_id=search.id, frequency=frequency
            )
        except Exception as e:
            # The window is already claimed; these listings are not retried
            self.logger.error(
                f"Sink rejected {frequency.value} digest for search {search.id}: {e}",
                exc_info=True,
                extra={"event": "alert.sink_error", "error_type": type(e).__name__},
            )
            return SearchDispatchStats(
                search.id, FAILED, listing_ids=listing_ids, error_message=str(e)
            )

        self.logger.info(
            f"{frequency.value} digest with {len(matched)} listing(s) dispatched "
            f"for search {search.id}",
            extra={
                "event": "alert.dispatched",
                "owner_id": search.owner_id,
                "listing_count": len(matched),
                "window_start": format_timestamp_for_log(window_start),
                "notification_status": notification.status if notification else None,
            },
        )
        return SearchDispatchStats(
            search.id,
            DISPATCHED,
            listing_ids=listing_ids,
            notification_status=notification.status if notification else None,
        )
