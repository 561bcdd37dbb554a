"""Filter matching engine for saved searches.

This module provides:
- matches: pure predicate deciding whether a listing satisfies a FilterSpec
- evaluate: the same decision plus the names of the failed clauses
- FilterMatcher: injectable wrapper around both
- MatchResult: result of an evaluation
"""

from .engine import CLAUSES, FilterMatcher, evaluate, matches
from .models import MatchResult

__all__ = [
    "CLAUSES",
    "FilterMatcher",
    "MatchResult",
    "evaluate",
    "matches",
]
