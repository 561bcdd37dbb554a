"""Structured logging helpers for the alert engine.

Every module obtains its logger through ``get_logger`` so that records carry a
``component`` field (``matcher``, ``instant``, ``digest``, ``notification``,
``database``, ``scheduler``, ``cli``) next to whatever ``extra`` the call adds.
"""

import logging
from typing import Optional, Union


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges its component field into per-call extras."""

    def process(self, msg, kwargs):
        # Per-call extra wins over the adapter default
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(
    name: str, component: Optional[str] = None
) -> Union[logging.Logger, ComponentLoggerAdapter]:
    """Return a logger, wrapped to inject ``component`` when one is given.

    Example:
        >>> logger = get_logger(__name__, component="digest")
        >>> logger.info("Digest run started", extra={"event": "digest.run.started"})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger


__all__ = ["ComponentLoggerAdapter", "get_logger"]
