"""
Conversion between Yoto API payloads and sync models.

The Yoto API returns loosely structured JSON. This module is the boundary
where it becomes typed data: required fields are checked here, optional
fields default, and nothing service-specific leaks into the planner.

Payload shapes (relevant fields only):

    card:    {"cardId", "title", "content": {"chapters": [...], ...}, "metadata": {...}}
    chapter: {"key", "title", "tracks": [track], "display": {"icon16x16"}, "duration", "fileSize"}
    track:   {"key", "title", "format", "trackUrl": "yoto:#<sha256>", "type", "duration",
              "fileSize", "channels"}

A chapter read from a card keeps its full payload in TargetItem.raw; writing
it back uses that payload unchanged.
"""

from typing import Any

from yoto_sync.core.exceptions import YotoApiError
from yoto_sync.sync.models import Container, ContainerDetails, PublishedAsset, TargetItem


MEDIA_REF_PREFIX = "yoto:#"
DEFAULT_COVER_URL = "https://cdn.yoto.io/myo-cover/bee_grapefruit.gif"


def _require(payload: dict[str, Any], field: str, what: str) -> Any:
    value = payload.get(field)
    if value is None or value == "":
        raise YotoApiError(
            f"Malformed {what} in Yoto API response: missing '{field}'",
            details={"field": field, "payload_keys": sorted(payload)}
        )
    return value


def media_ref(asset_ref: str) -> str:
    return f"{MEDIA_REF_PREFIX}{asset_ref}"


def chapter_to_item(chapter: dict[str, Any]) -> TargetItem:
    """
    Convert a chapter payload into a TargetItem.

    Raises:
        YotoApiError: If the chapter has no key.
    """
    if not isinstance(chapter, dict):
        raise YotoApiError("Malformed chapter in Yoto API response")

    key = str(_require(chapter, "key", "chapter"))
    tracks = chapter.get("tracks") or []
    first_track = tracks[0] if tracks and isinstance(tracks[0], dict) else {}

    display = chapter.get("display") or first_track.get("display") or {}

    return TargetItem(
        key=key,
        title=chapter.get("title") or first_track.get("title") or "",
        media_ref=first_track.get("trackUrl", ""),
        duration=chapter.get("duration", first_track.get("duration")),
        file_size=chapter.get("fileSize", first_track.get("fileSize")),
        icon=display.get("icon16x16"),
        raw=chapter,
    )


def item_to_chapter(item: TargetItem) -> dict[str, Any]:
    """Payload to write for item: its original chapter payload when it has one."""
    if item.raw:
        return item.raw
    return build_chapter(item.title, item.media_ref.removeprefix(MEDIA_REF_PREFIX), item.key,
                         duration=item.duration, file_size=item.file_size)


def build_chapter(
    title: str,
    asset_ref: str,
    key: str,
    duration: float | None = None,
    file_size: int | None = None
) -> dict[str, Any]:
    """
    Build a single-track chapter for a transcoded asset.

    Icons are omitted so the Yoto app shows its default.
    """
    chapter: dict[str, Any] = {
        "key": key,
        "title": title,
        "tracks": [
            {
                "key": "01",
                "title": title,
                "format": "opus",
                "trackUrl": media_ref(asset_ref),
                "type": "audio",
                "channels": "stereo",
            }
        ],
    }
    if duration:
        chapter["duration"] = duration
        chapter["tracks"][0]["duration"] = duration
    if file_size:
        chapter["fileSize"] = file_size
        chapter["tracks"][0]["fileSize"] = file_size
    return chapter


def asset_to_item(title: str, asset: PublishedAsset, key: str) -> TargetItem:
    """TargetItem for a newly published asset, carrying the payload to write."""
    chapter = build_chapter(title, asset.asset_ref, key, duration=asset.duration, file_size=asset.file_size)
    return TargetItem(
        key=key,
        title=title,
        media_ref=media_ref(asset.asset_ref),
        duration=asset.duration or None,
        file_size=asset.file_size or None,
        raw=chapter,
    )


def card_to_container(card: dict[str, Any]) -> Container:
    return Container(
        id=str(_require(card, "cardId", "card")),
        name=card.get("title") or "",
    )


def card_to_details(card: dict[str, Any]) -> ContainerDetails:
    """
    Convert a full card payload into ContainerDetails.

    Raises:
        YotoApiError: If the card or one of its chapters is malformed.
    """
    container = card_to_container(card)
    chapters = (card.get("content") or {}).get("chapters") or []
    return ContainerDetails(
        id=container.id,
        name=container.name,
        items=tuple(chapter_to_item(chapter) for chapter in chapters),
    )


def new_card_payload(title: str, chapters: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    """Body of POST /content for a new card."""
    return {
        "title": title,
        "content": {
            "activity": "yoto_Player",
            "chapters": chapters or [],
            "restricted": True,
            "config": {"onlineOnly": False},
            "version": "1",
        },
        "metadata": {
            "cover": {"imageL": DEFAULT_COVER_URL},
            "media": {},
        },
    }


def updated_card_payload(existing: dict[str, Any], chapters: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Body of POST /content replacing the chapters of an existing card.

    Every other content field and the metadata are copied from existing.
    """
    content = dict(existing.get("content") or {})
    content["chapters"] = chapters
    return {
        "cardId": existing["cardId"],
        "title": existing.get("title", ""),
        "content": content,
        "metadata": existing.get("metadata") or {},
    }
