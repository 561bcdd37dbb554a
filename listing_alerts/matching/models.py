"""Data models for the matching engine."""

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class MatchResult:
    """Result of evaluating a listing against a FilterSpec.

    Attributes:
        is_match: True if every present clause is satisfied
        failed_clauses: Names of the clauses that rejected the listing, in
            evaluation order
    """

    is_match: bool
    failed_clauses: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def summary(self) -> str:
        if self.is_match:
            return "match"
        return "rejected by " + ", ".join(self.failed_clauses)
