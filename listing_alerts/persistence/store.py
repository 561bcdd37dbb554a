"""Unit-of-work scope binding the SQL repositories to one session."""

from contextlib import contextmanager
from typing import Generator

from listing_alerts.alerts.interfaces import AlertStore

from .database import get_session
from .repositories import (
    AlertRepository,
    ListingRepository,
    SavedSearchRepository,
    UserRepository,
)


@contextmanager
def sql_store_scope() -> Generator[AlertStore, None, None]:
    """Open a session and expose it as an AlertStore.

    The transaction commits when the block exits normally.
    """
    with get_session() as session:
        yield AlertStore(
            searches=SavedSearchRepository(session),
            listings=ListingRepository(session),
            contacts=UserRepository(session),
            ledger=AlertRepository(session),
        )
