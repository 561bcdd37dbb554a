"""Data models for dispatch run tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

DISPATCHED = "dispatched"
NO_MATCH = "no_match"
CONFLICT = "conflict"
DUPLICATE = "duplicate"
FAILED = "failed"


@dataclass
class SearchDispatchStats:
    """
    Outcome for a single saved search within a dispatch run.

    Attributes:
        search_id: Saved search identifier
        status: One of dispatched, no_match, conflict, duplicate, failed
        listing_ids: Listings carried by the alert (empty unless dispatched)
        notification_status: Status reported by the sink (sent, queued, failed)
        error_message: Failure description when status is failed
    """

    search_id: str
    status: str
    listing_ids: Tuple[str, ...] = field(default_factory=tuple)
    notification_status: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class DispatchRunResult:
    """
    Aggregate outcome of one on_publish or run_digest call.

    Attributes:
        trigger: "instant", "daily" or "weekly"
        run_id: Correlation id shared by every log line of the run
        run_started_at: UTC time the run began
        run_finished_at: UTC time the run ended
        searches_evaluated: Number of saved searches the matcher saw
        search_stats: Per-search outcomes, excluding plain non-matches
        error_message: Set when the run could not load its searches at all
        skipped: True when the run did no work (unpublished listing, or an
            overlapping digest run of the same frequency)
    """

    trigger: str
    run_id: str
    run_started_at: datetime
    run_finished_at: Optional[datetime] = None
    searches_evaluated: int = 0
    search_stats: List[SearchDispatchStats] = field(default_factory=list)
    error_message: Optional[str] = None
    skipped: bool = False

    def _count(self, status: str) -> int:
        return sum(1 for s in self.search_stats if s.status == status)

    @property
    def dispatched(self) -> int:
        return self._count(DISPATCHED)

    @property
    def conflicts(self) -> int:
        return self._count(CONFLICT)

    @property
    def duplicates(self) -> int:
        return self._count(DUPLICATE)

    @property
    def failures(self) -> int:
        return self._count(FAILED)

    @property
    def had_errors(self) -> bool:
        return self.error_message is not None or self.failures > 0

    @property
    def dispatched_search_ids(self) -> List[str]:
        return [s.search_id for s in self.search_stats if s.status == DISPATCHED]

    @property
    def duration_seconds(self) -> float:
        if self.run_finished_at is None:
            return 0.0
        return (self.run_finished_at - self.run_started_at).total_seconds()
