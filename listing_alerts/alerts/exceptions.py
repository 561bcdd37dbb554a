"""Exceptions raised inside the alerts package."""


class DispatchError(Exception):
    """Base exception for dispatch failures."""


class UnsupportedFrequencyError(DispatchError, ValueError):
    """Raised when run_digest is asked for a frequency other than daily or weekly."""
