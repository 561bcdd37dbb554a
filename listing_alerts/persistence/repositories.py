"""Repositories: SQL implementations of the dispatcher contracts.

Each repository wraps one SQLAlchemy session and returns domain models rather
than ORM rows. SQLAlchemy errors are logged and re-raised as PersistenceError.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from listing_alerts.alerts.interfaces import (
    AlertLedger,
    ContactDirectory,
    ListingSource,
    SavedSearchStore,
)
from listing_alerts.domain.models import (
    PUBLISHED_STATUS,
    AlertFrequency,
    AlertRecord,
    ContactInfo,
    ListingSnapshot,
    SavedSearch,
)
from listing_alerts.utils.timestamps import ensure_utc, to_storage

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import AlertRecordModel, ListingModel, SavedSearchModel, UserModel

logger = logging.getLogger(__name__)


class SavedSearchRepository(SavedSearchStore):
    """Repository for saved searches."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, search_id: str) -> Optional[SavedSearch]:
        try:
            model = self.session.get(SavedSearchModel, search_id)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving saved search {search_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve saved search: {e}") from e
        return model.to_domain() if model else None

    def list_active(self, frequency: AlertFrequency) -> List[SavedSearch]:
        """Return active searches for one frequency, oldest first.

        Rows that cannot be converted to a SavedSearch are logged and skipped.

        Args:
            frequency: Delivery frequency to select

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(SavedSearchModel)
                .where(
                    SavedSearchModel.active.is_(True),
                    SavedSearchModel.frequency == AlertFrequency(frequency).value,
                )
                .order_by(SavedSearchModel.created_at, SavedSearchModel.id)
            )
            models = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing {frequency} searches: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list saved searches: {e}") from e

        searches = []
        for model in models:
            try:
                searches.append(model.to_domain())
            except (ValueError, TypeError, OverflowError) as e:
                logger.error(
                    f"Skipping saved search {model.id}: stored row is unreadable: {e}",
                    exc_info=True,
                )
        return searches

    def update_last_alert_sent(
        self, search_id: str, expected_previous: Optional[datetime], new_value: datetime
    ) -> bool:
        """Conditionally advance ``last_alert_sent``.

        The UPDATE only matches while the row still holds
        ``expected_previous`` (NULL when None), so of two concurrent writers
        that read the same value exactly one wins.

        Returns:
            True if the row was updated, False on a lost race, an unknown
            search, or an attempt to move the timestamp backwards

        Raises:
            PersistenceError: If database error occurs
        """
        expected_previous = ensure_utc(expected_previous)
        new_value = ensure_utc(new_value)
        if expected_previous is not None and new_value < expected_previous:
            return False

        if expected_previous is None:
            guard = SavedSearchModel.last_alert_sent.is_(None)
        else:
            guard = SavedSearchModel.last_alert_sent == to_storage(expected_previous)

        try:
            stmt = (
                update(SavedSearchModel)
                .where(SavedSearchModel.id == search_id, guard)
                .values(last_alert_sent=to_storage(new_value))
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating last_alert_sent for {search_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update last_alert_sent: {e}") from e

        return result.rowcount == 1

    def add(self, search: SavedSearch) -> SavedSearch:
        """Insert a saved search.

        Raises:
            DataIntegrityError: If the id already exists
            PersistenceError: If database error occurs
        """
        try:
            model = SavedSearchModel.from_domain(search)
            self.session.add(model)
            self.session.flush()
        except IntegrityError as e:
            raise DataIntegrityError(f"Saved search {search.id} already exists") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding saved search {search.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add saved search: {e}") from e
        return model.to_domain()


class ListingRepository(ListingSource):
    """Repository for the listing projection."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, listing_id: str) -> Optional[ListingSnapshot]:
        try:
            model = self.session.get(ListingModel, listing_id)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving listing {listing_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve listing: {e}") from e
        return model.to_domain() if model else None

    def get_published_since(self, since: datetime) -> List[ListingSnapshot]:
        """Return published listings created strictly after ``since``, newest first.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(ListingModel)
                .where(
                    ListingModel.status == PUBLISHED_STATUS,
                    ListingModel.created_at > to_storage(since),
                )
                .order_by(ListingModel.created_at.desc(), ListingModel.id)
            )
            models = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving listings since {since}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve listings: {e}") from e

        return [model.to_domain() for model in models]

    def upsert(self, listing: ListingSnapshot) -> ListingSnapshot:
        """Insert a listing or overwrite the stored row with the same id.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(ListingModel, listing.id)
            if existing:
                existing.apply(listing)
                model = existing
            else:
                model = ListingModel.from_domain(listing)
                self.session.add(model)
            self.session.flush()
        except IntegrityError as e:
            logger.error(f"Integrity error upserting listing {listing.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to upsert listing: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error upserting listing {listing.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert listing: {e}") from e
        return model.to_domain()


class UserRepository(ContactDirectory):
    """Repository for search owners' contact details."""

    def __init__(self, session: Session):
        self.session = session

    def get_contact(self, owner_id: str) -> ContactInfo:
        """Return the contact for ``owner_id``.

        Raises:
            RecordNotFoundError: If the user is missing or has no e-mail
            PersistenceError: If database error occurs
        """
        try:
            model = self.session.get(UserModel, owner_id)
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user {owner_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

        if model is None:
            raise RecordNotFoundError(f"User {owner_id} not found")
        if not model.email:
            raise RecordNotFoundError(f"User {owner_id} has no e-mail address")
        return model.to_contact()

    def upsert(self, owner_id: str, email: Optional[str], name: Optional[str] = None) -> None:
        try:
            existing = self.session.get(UserModel, owner_id)
            if existing:
                existing.email = email
                existing.name = name
            else:
                self.session.add(UserModel(id=owner_id, email=email, name=name))
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error upserting user {owner_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to upsert user: {e}") from e


class AlertRepository(AlertLedger):
    """Ledger of instant alerts already dispatched."""

    def __init__(self, session: Session):
        self.session = session

    def has_been_sent(self, search_id: str, listing_id: str) -> bool:
        try:
            model = self.session.get(
                AlertRecordModel, {"search_id": search_id, "listing_id": listing_id}
            )
        except SQLAlchemyError as e:
            logger.error(
                f"Error checking alert for search {search_id}, listing {listing_id}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to check alert status: {e}") from e
        return model is not None

    def list_for_search(self, search_id: str) -> List[AlertRecord]:
        """Ledger entries of one search, oldest first."""
        try:
            stmt = (
                select(AlertRecordModel)
                .where(AlertRecordModel.search_id == search_id)
                .order_by(AlertRecordModel.sent_at, AlertRecordModel.listing_id)
            )
            models = self.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing alerts for search {search_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list alerts: {e}") from e
        return [model.to_domain() for model in models]

    def claim(self, search_id: str, listing_id: str, at: datetime) -> bool:
        """Insert the ledger row for a pair unless it already exists.

        On a lost insert race the current transaction is rolled back, so
        callers should claim before any other write in the same session.

        Returns:
            True if this call created the row, False if it already existed

        Raises:
            PersistenceError: If database error occurs
        """
        if self.has_been_sent(search_id, listing_id):
            return False

        try:
            self.session.add(
                AlertRecordModel(search_id=search_id, listing_id=listing_id, sent_at=to_storage(at))
            )
            self.session.flush()
        except IntegrityError:
            logger.debug(
                f"Alert for search {search_id}, listing {listing_id} claimed concurrently"
            )
            self.session.rollback()
            return False
        except SQLAlchemyError as e:
            logger.error(
                f"Error claiming alert for search {search_id}, listing {listing_id}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to claim alert: {e}") from e
        return True
