"""
Data models for playlist reconciliation.

This module defines the dataclasses passed between the catalog, the card
service, the planner and the orchestrator. Loose JSON from the collaborators
is converted into these types at the boundary, so the planner never sees
service-specific shapes.

Design Decisions:
    - Items and associations are frozen (immutable)
    - TargetItem keeps the untouched chapter payload in `raw`, so a kept
      chapter is written back exactly as it was read (icons included)
    - Plan positions are 1-based and only set for KEEP/ADD items

Usage:
    from yoto_sync.sync.models import SourceItem, TargetItem, SyncPlan

    plan = generate_plan(source_items, target_items)
    for item in plan.positional_items():
        print(item.position, item.action.value, item.title)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class SourceItem:
    """
    One entry of the source (YouTube) playlist.

    Attributes:
        id: YouTube video ID. Example: "dQw4w9WgXcQ"
        title: Video title as listed in the playlist.
        locator: URL the fetcher downloads from.
                 Example: "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    """
    id: str
    title: str
    locator: str


@dataclass(frozen=True)
class SourcePlaylist:
    """
    A source playlist as returned by the catalog.

    Attributes:
        id: YouTube playlist ID (the association key).
        title: Playlist title, used as the default card name.
        items: Entries in playlist order.
    """
    id: str
    title: str
    items: tuple[SourceItem, ...] = ()


@dataclass(frozen=True)
class TargetItem:
    """
    One chapter of the target card.

    Attributes:
        key: Chapter key. Usually unique within the card, though cards edited elsewhere can repeat one. Example: "03"
        title: Chapter title.
        media_ref: Reference to the transcoded asset ("yoto:#<sha256>").
        duration: Duration in seconds, if known.
        file_size: Transcoded size in bytes, if known.
        icon: Display icon reference, if any.
        raw: The complete chapter payload as read from (or to be written
             to) the card service. Compared by identity only.
    """
    key: str
    title: str
    media_ref: str = ""
    duration: float | None = None
    file_size: int | None = None
    icon: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False, hash=False)


@dataclass(frozen=True)
class Container:
    """A card listed in the account: ID and display name."""
    id: str
    name: str


@dataclass(frozen=True)
class ContainerDetails:
    """A card with its current chapters, in card order."""
    id: str
    name: str
    items: tuple[TargetItem, ...] = ()


class SyncAction(Enum):
    """Classification of a plan item."""
    KEEP = "keep"
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class SyncPlanItem:
    """
    One classified item of a sync plan.

    Attributes:
        position: 1-based position in the resulting card for KEEP/ADD,
                  None for REMOVE.
        action: What happens to this item.
        title: Source title for KEEP/ADD, chapter title for REMOVE.
        source: The source entry (KEEP/ADD).
        target: The existing chapter (KEEP/REMOVE).
    """
    position: int | None
    action: SyncAction
    title: str
    source: SourceItem | None = None
    target: TargetItem | None = None


@dataclass(frozen=True)
class SyncPlan:
    """
    Keep/add/remove reconciliation between a source playlist and a card.

    Items are ordered: KEEP/ADD items in source order (positions 1..N),
    followed by REMOVE items in card order.
    """
    items: tuple[SyncPlanItem, ...]
    keep_count: int
    add_count: int
    remove_count: int

    @property
    def has_changes(self) -> bool:
        """True if anything would be added or removed."""
        return self.add_count > 0 or self.remove_count > 0

    def positional_items(self) -> list[SyncPlanItem]:
        """KEEP and ADD items sorted by position."""
        return sorted(
            (item for item in self.items if item.action is not SyncAction.REMOVE),
            key=lambda item: item.position,
        )

    def items_to_add(self) -> list[SyncPlanItem]:
        """ADD items in source order."""
        return [item for item in self.positional_items() if item.action is SyncAction.ADD]

    def items_to_remove(self) -> list[SyncPlanItem]:
        """REMOVE items in card order."""
        return [item for item in self.items if item.action is SyncAction.REMOVE]


@dataclass(frozen=True)
class Association:
    """
    Remembered link between a source playlist and a card.

    Attributes:
        source_id: YouTube playlist ID (unique key).
        target_id: Yoto card ID.
        target_name: Card title at the time of the last sync.
        source_name: Playlist title at the time of the last sync.
        last_synced_at: Time of the last successful commit (UTC).
    """
    source_id: str
    target_id: str
    target_name: str
    source_name: str
    last_synced_at: datetime


@dataclass(frozen=True)
class ResolvedTarget:
    """The card a sync run writes to."""
    target_id: str
    target_name: str
    is_newly_created: bool = False


@dataclass(frozen=True)
class PublishedAsset:
    """
    Result of publishing one payload.

    Attributes:
        asset_ref: Content hash of the transcoded asset.
        duration: Duration in seconds (0 if the service did not report it).
        file_size: Size in bytes (0 if not reported).
        already_published: True if the service already had this content
                           and no upload happened.
    """
    asset_ref: str
    duration: float = 0
    file_size: int = 0
    already_published: bool = False


class SyncOutcome(Enum):
    """How a sync run ended, when it did not raise."""
    SYNCED = "synced"
    ALREADY_IN_SYNC = "already_in_sync"
    CANCELLED = "cancelled"


@dataclass
class SyncResult:
    """
    Summary of one sync run.

    Attributes:
        outcome: How the run ended.
        source: The source playlist, if it was read.
        target: The resolved card, if resolution finished.
        plan: The plan, if it was generated.
        association_saved: True if the association was persisted.
        states: State names the run passed through, in order.
    """
    outcome: SyncOutcome
    source: SourcePlaylist | None = None
    target: ResolvedTarget | None = None
    plan: SyncPlan | None = None
    association_saved: bool = False
    states: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        """True if the card was written."""
        return self.outcome is SyncOutcome.SYNCED
