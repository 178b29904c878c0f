"""
Approximate title matching.

Used both to pair playlist entries with existing card chapters and to find
a card by an operator-supplied name.

Distance:
    Every comparison produces a distance in [0, 1], where 0 means identical.
    The default scorer is rapidfuzz's WRatio on normalized text (lowercased,
    punctuation stripped), mapped to a distance:

        distance = 1 - WRatio(query, candidate) / 100

    A candidate is accepted only when its distance is strictly below the
    threshold (default 0.4, lower = stricter). When two candidates have the
    same distance, the earlier one in the candidate list wins.

Usage:
    from yoto_sync.matching import match, match_all

    chapter = match("Hotel California", chapters)
    cards = match_all("Bedtime", containers, key=lambda c: c.name)
"""

from typing import Callable, Iterable, TypeVar

from rapidfuzz import fuzz
from rapidfuzz.utils import default_process


T = TypeVar("T")

DEFAULT_THRESHOLD = 0.4

Scorer = Callable[[str, str], float]


def title_distance(query: str, candidate: str) -> float:
    """Default scorer: normalized WRatio expressed as a distance."""
    similarity = fuzz.WRatio(query, candidate, processor=default_process)
    return 1.0 - similarity / 100.0


def _title_of(candidate) -> str:
    return candidate.title


def _check_threshold(threshold: float) -> None:
    if not 0 < threshold <= 1:
        raise ValueError(f"threshold must be in (0, 1], got {threshold}")


def match_all(
    query: str,
    candidates: Iterable[T],
    threshold: float = DEFAULT_THRESHOLD,
    key: Callable[[T], str] = _title_of,
    scorer: Scorer = title_distance,
) -> list[T]:
    """
    Return every candidate whose distance to query is below threshold.

    Args:
        query: Text to look for.
        candidates: Objects to compare against, in preference order.
        threshold: Exclusive upper bound on the accepted distance.
        key: Extracts the text of a candidate (defaults to `.title`).
        scorer: Distance function, 0 = identical, 1 = unrelated.

    Returns:
        Accepted candidates ordered by ascending distance; equal distances
        keep their original relative order.

    Raises:
        ValueError: If threshold is not in (0, 1].
    """
    _check_threshold(threshold)

    scored = []
    for candidate in candidates:
        distance = scorer(query, key(candidate))
        if distance < threshold:
            scored.append((distance, candidate))

    # sorted() is stable, so ties keep candidate order
    scored = sorted(scored, key=lambda pair: pair[0])
    return [candidate for _, candidate in scored]


def match(
    query: str,
    candidates: Iterable[T],
    threshold: float = DEFAULT_THRESHOLD,
    key: Callable[[T], str] = _title_of,
    scorer: Scorer = title_distance,
) -> T | None:
    """
    Return the closest candidate below threshold, or None.

    See match_all() for the arguments.
    """
    matches = match_all(query, candidates, threshold=threshold, key=key, scorer=scorer)
    return matches[0] if matches else None
