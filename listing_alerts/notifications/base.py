"""The NotificationSink contract used by the dispatchers."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from listing_alerts.domain.models import AlertFrequency, ContactInfo, ListingSnapshot

from .models import NotificationResult


class NotificationSink(ABC):
    """Delivers alerts to search owners.

    Implementations should report delivery problems through the returned
    NotificationResult. Dispatchers still guard against exceptions, so a sink
    that raises cannot break a dispatch run.
    """

    @abstractmethod
    def send_instant_match(
        self,
        contact: ContactInfo,
        listing: ListingSnapshot,
        search_name: str,
        *,
        search_id: Optional[str] = None,
    ) -> NotificationResult:
        """Notify the owner that one newly published listing matches."""

    @abstractmethod
    def send_digest(
        self,
        contact: ContactInfo,
        listings: Sequence[ListingSnapshot],
        search_name: str,
        *,
        search_id: Optional[str] = None,
        frequency: Optional[AlertFrequency] = None,
    ) -> NotificationResult:
        """Notify the owner of every listing that matched during the window."""
