"""
Fuzzy matching for yoto-sync.

Usage:
    from yoto_sync.matching import match, match_all
"""

from yoto_sync.matching.fuzzy import (
    DEFAULT_THRESHOLD,
    match,
    match_all,
    title_distance,
)

__all__ = [
    "DEFAULT_THRESHOLD",
    "match",
    "match_all",
    "title_distance",
]
