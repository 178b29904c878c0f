"""
Collaborator contracts used by the resolver and the orchestrator.

The concrete implementations live in yoto_sync.youtube, yoto_sync.yoto and
yoto_sync.core.associations. Tests substitute in-memory fakes.
"""

from pathlib import Path
from typing import Any, Protocol, Sequence, TypeVar

from yoto_sync.sync.models import (
    Association,
    Container,
    ContainerDetails,
    PublishedAsset,
    SourceItem,
    SourcePlaylist,
    SyncPlan,
    TargetItem,
)


V = TypeVar("V")


class CatalogClient(Protocol):
    def extract_playlist_id(self, reference: str) -> str: ...

    def get_playlist(self, reference: str) -> SourcePlaylist: ...


class CardClient(Protocol):
    def list_containers(self) -> list[Container]: ...

    def get_container(self, container_id: str) -> ContainerDetails: ...

    def create_container(self, name: str) -> Container: ...

    def replace_items(self, container_id: str, items: Sequence[TargetItem]) -> None: ...

    def new_item(self, title: str, asset: PublishedAsset, key: str) -> TargetItem: ...


class MediaFetcher(Protocol):
    def fetch(self, item: SourceItem, workspace: Path) -> Path: ...


class MediaPublisher(Protocol):
    def publish(self, path: Path) -> PublishedAsset: ...


class AssociationRepository(Protocol):
    def get(self, source_id: str) -> Association | None: ...

    def upsert(self, association: Association) -> None: ...


class Prompt(Protocol):
    def confirm(self, message: str, default: bool = True) -> bool: ...

    def select_one(self, message: str, choices: Sequence[tuple[str, V]]) -> V: ...

    def free_text(self, message: str, default: str | None = None) -> str: ...


class PlanRenderer(Protocol):
    def __call__(self, plan: SyncPlan, source: SourcePlaylist, target_name: str) -> Any: ...
