"""Scoped logging context backed by contextvars.

Fields pushed here (``run_id``, ``search_id``, ``listing_id``, ``frequency``)
are copied onto every log record emitted inside the scope by
``ContextualFilter``. Because the storage is a ContextVar, each thread and each
asyncio task sees its own stack, so concurrent ``on_publish`` calls from
different request workers do not bleed fields into each other.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional

LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("alert_log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the active logging context."""
    return LogContextVar.get().copy()


def push_log_context(**fields: Any) -> Token:
    """Merge ``fields`` into the active context.

    Returns:
        Token to hand back to ``pop_log_context`` to restore the prior state

    Example:
        >>> token = push_log_context(run_id="abc123", frequency="daily")
        >>> pop_log_context(token)
    """
    return LogContextVar.set({**LogContextVar.get(), **fields})


def pop_log_context(token: Token) -> None:
    """Restore the context captured by ``push_log_context``."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop every context field (test helper)."""
    LogContextVar.set({})


class log_context:
    """Context manager form of push/pop.

    Example:
        >>> with log_context(search_id="s-1", listing_id="l-9"):
        ...     logger.info("Evaluating search")
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
            self.token = None
        return False
