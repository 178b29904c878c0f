"""
Sync plan generation.

Classifies every playlist entry and every card chapter as KEEP, ADD or
REMOVE. Pure and deterministic: no I/O, no logging.

Algorithm:
    1. Walk the source items in playlist order (position i+1).
    2. Match the item's title against the chapters not yet claimed.
    3. A match is KEEP and claims the chapter; no match is ADD.
    4. Every chapter never claimed is REMOVE, in card order.

Walking in source order means the first entry that plausibly matches a
chapter claims it, so a chapter is never kept twice.
"""

from typing import Sequence

from yoto_sync.matching.fuzzy import DEFAULT_THRESHOLD, Scorer, match, title_distance
from yoto_sync.sync.models import (
    SourceItem,
    SyncAction,
    SyncPlan,
    SyncPlanItem,
    TargetItem,
)


def generate_plan(
    source_items: Sequence[SourceItem],
    target_items: Sequence[TargetItem],
    threshold: float = DEFAULT_THRESHOLD,
    scorer: Scorer = title_distance,
) -> SyncPlan:
    """
    Reconcile a source playlist with the current chapters of a card.

    Args:
        source_items: Playlist entries in playlist order.
        target_items: Card chapters in card order. Chapters are told apart by
                      position, so duplicate keys are fine.
        threshold: Maximum (exclusive) title distance for a KEEP.
        scorer: Title distance function, see yoto_sync.matching.fuzzy.

    Returns:
        SyncPlan whose KEEP/ADD items carry dense positions 1..N in source
        order, followed by REMOVE items in card order.
    """
    consumed: set[int] = set()
    positional: list[SyncPlanItem] = []
    keep_count = 0

    for index, source in enumerate(source_items):
        available = [(slot, target) for slot, target in enumerate(target_items) if slot not in consumed]
        found = match(source.title, available, threshold=threshold, key=lambda pair: pair[1].title, scorer=scorer)

        if found is not None:
            slot, target = found
            consumed.add(slot)
            keep_count += 1
            positional.append(SyncPlanItem(
                position=index + 1,
                action=SyncAction.KEEP,
                title=source.title,
                source=source,
                target=target,
            ))
        else:
            positional.append(SyncPlanItem(
                position=index + 1,
                action=SyncAction.ADD,
                title=source.title,
                source=source,
            ))

    removals = [
        SyncPlanItem(position=None, action=SyncAction.REMOVE, title=target.title, target=target)
        for slot, target in enumerate(target_items)
        if slot not in consumed
    ]

    return SyncPlan(
        items=tuple(positional + removals),
        keep_count=keep_count,
        add_count=len(positional) - keep_count,
        remove_count=len(removals),
    )
