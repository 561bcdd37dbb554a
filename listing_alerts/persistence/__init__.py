"""Persistence layer for the alert engine, built on SQLAlchemy.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine
    - sql_store_scope() -> ContextManager[AlertStore]

    # Repositories (SQL implementations of the dispatcher contracts)
    - SavedSearchRepository: active searches and the last_alert_sent CAS
    - ListingRepository: published listings by creation time
    - UserRepository: owner contact lookup
    - AlertRepository: instant-alert ledger

Example usage:
    >>> from listing_alerts.persistence import init_database, sql_store_scope
    >>> init_database("sqlite:///./data/listing_alerts.db")
    >>> with sql_store_scope() as store:
    ...     searches = store.searches.list_active(AlertFrequency.INSTANT)
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
)
from .repositories import (
    AlertRepository,
    ListingRepository,
    SavedSearchRepository,
    UserRepository,
)
from .store import sql_store_scope

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "sql_store_scope",
    # Repositories
    "SavedSearchRepository",
    "ListingRepository",
    "UserRepository",
    "AlertRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
]
