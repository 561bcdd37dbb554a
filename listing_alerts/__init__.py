"""Saved-search matching and alert dispatch engine for a listing marketplace."""

__version__ = "0.1.0"
