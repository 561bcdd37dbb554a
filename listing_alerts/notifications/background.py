"""Fire-and-forget delivery through a bounded thread pool.

``BackgroundNotificationSink`` wraps any sink: each call is submitted to the
pool and answered immediately with a ``queued`` result, so a publish request
or digest run never waits on SMTP. Outcomes are logged from the worker.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Optional, Sequence, Set

from listing_alerts.domain.models import AlertFrequency, ContactInfo, ListingSnapshot
from listing_alerts.logging import get_logger
from listing_alerts.logging.context import get_log_context, log_context

from .base import NotificationSink
from .models import NotificationResult

logger = get_logger(__name__, component="notification")


class BackgroundNotificationSink(NotificationSink):
    """Submit deliveries to a worker pool and return without waiting."""

    def __init__(self, inner: NotificationSink, max_workers: int = 4):
        self.inner = inner
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="alert-delivery"
        )
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False

    def send_instant_match(
        self,
        contact: ContactInfo,
        listing: ListingSnapshot,
        search_name: str,
        *,
        search_id: Optional[str] = None,
    ) -> NotificationResult:
        self._submit(
            self.inner.send_instant_match, contact, listing, search_name, search_id=search_id
        )
        return NotificationResult(
            kind="instant",
            recipient=contact.email,
            search_name=search_name,
            status="queued",
            listing_ids=(listing.id,),
        )

    def send_digest(
        self,
        contact: ContactInfo,
        listings: Sequence[ListingSnapshot],
        search_name: str,
        *,
        search_id: Optional[str] = None,
        frequency: Optional[AlertFrequency] = None,
    ) -> NotificationResult:
        listings = list(listings)
        self._submit(
            self.inner.send_digest,
            contact,
            listings,
            search_name,
            search_id=search_id,
            frequency=frequency,
        )
        return NotificationResult(
            kind="digest",
            recipient=contact.email,
            search_name=search_name,
            status="queued",
            listing_ids=tuple(listing.id for listing in listings),
        )

    def _submit(self, fn, *args, **kwargs) -> None:
        # Carry the caller's log context into the worker thread
        fields = get_log_context()

        def run():
            with log_context(**fields):
                return fn(*args, **kwargs)

        with self._lock:
            if self._closed:
                raise RuntimeError("BackgroundNotificationSink has been shut down")
            future = self._executor.submit(run)
            self._pending.add(future)
        future.add_done_callback(self._on_done)

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

        error = future.exception()
        if error is not None:
            logger.error(
                f"Background delivery raised: {error}",
                exc_info=(type(error), error, error.__traceback__),
                extra={"event": "notification.background.error", "error_type": type(error).__name__},
            )
            return

        result = future.result()
        if result is not None and not result.is_success():
            logger.warning(
                f"Background delivery of {result.kind} alert to {result.recipient} "
                f"ended with status {result.status}: {result.error}",
                extra={"event": "notification.background.failed", "status": result.status},
            )

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted delivery has finished.

        Returns:
            True if nothing is pending, False if ``timeout`` expired first
        """
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        """Stop accepting work and optionally drain queued deliveries."""
        with self._lock:
            self._closed = True
        logger.info(
            "Shutting down background delivery",
            extra={"event": "notification.background.shutdown", "drain": wait_for_pending},
        )
        self._executor.shutdown(wait=wait_for_pending)
