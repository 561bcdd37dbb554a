"""Collaborator contracts consumed by the dispatchers.

The dispatchers never talk to a database directly. They receive an
``AlertStore`` (one unit of work) from a ``StoreScope`` callable and use the
four contracts below. ``listing_alerts.persistence`` provides the SQL-backed
implementations; tests may supply in-memory ones.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, ContextManager, List, Optional

from listing_alerts.domain.models import AlertFrequency, ContactInfo, ListingSnapshot, SavedSearch


class ListingSource(ABC):
    @abstractmethod
    def get_published_since(self, since: datetime) -> List[ListingSnapshot]:
        """Return published listings with ``created_at`` strictly after ``since``."""

    @abstractmethod
    def get_by_id(self, listing_id: str) -> Optional[ListingSnapshot]:
        """Return the listing or None."""


class SavedSearchStore(ABC):
    @abstractmethod
    def list_active(self, frequency: AlertFrequency) -> List[SavedSearch]:
        """Return active searches with the given frequency."""

    @abstractmethod
    def update_last_alert_sent(
        self, search_id: str, expected_previous: Optional[datetime], new_value: datetime
    ) -> bool:
        """Compare-and-swap ``last_alert_sent``.

        Returns:
            True if the stored value equalled ``expected_previous`` and was
            replaced; False if another writer got there first or
            ``new_value`` would move the timestamp backwards
        """


class ContactDirectory(ABC):
    @abstractmethod
    def get_contact(self, owner_id: str) -> ContactInfo:
        """Return the owner's contact.

        Raises:
            RecordNotFoundError: If the owner is unknown or has no e-mail
        """


class AlertLedger(ABC):
    @abstractmethod
    def claim(self, search_id: str, listing_id: str, at: datetime) -> bool:
        """Record an instant alert for the pair; False if already recorded."""


@dataclass
class AlertStore:
    """The collaborators available inside one unit of work."""

    searches: SavedSearchStore
    listings: ListingSource
    contacts: ContactDirectory
    ledger: AlertLedger


StoreScope = Callable[[], ContextManager[AlertStore]]
