"""Persistence layer exceptions.

Everything raised by ``listing_alerts.persistence`` derives from
PersistenceError, so the dispatchers can isolate storage failures per search
with a single except clause.
"""


class PersistenceError(Exception):
    """Base exception for storage failures."""


class DatabaseConnectionError(PersistenceError):
    """Raised when the engine cannot be created or reached.

    Also raised when a session is requested before ``init_database``.
    """


class RecordNotFoundError(PersistenceError):
    """Raised when a lookup that must succeed finds nothing.

    The contact directory raises it for unknown owners and for owners without
    an e-mail address. Optional lookups return None instead.
    """


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations other than an expected duplicate claim."""
