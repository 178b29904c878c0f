"""
YouTube playlist catalog.

Reads a playlist's ID, title and entries with yt-dlp in flat mode (no
per-video requests), the equivalent of:

    yt-dlp --flat-playlist --print "%(playlist_id)s %(playlist_title)s %(id)s %(title)s" URL

Accepted references:
    - Any YouTube URL with a list= parameter
      https://www.youtube.com/playlist?list=PLxxxx
      https://www.youtube.com/watch?v=abc&list=PLxxxx
      https://music.youtube.com/playlist?list=OLAKxxxx
    - A bare playlist ID starting with PL, OL, UU, FL or RD
"""

import re
from typing import Any
from urllib.parse import parse_qs, urlparse

from yt_dlp import YoutubeDL

from yoto_sync.core.exceptions import CatalogError, CatalogNotFoundError, ValidationError
from yoto_sync.core.logger import get_logger
from yoto_sync.sync.models import SourceItem, SourcePlaylist
from yoto_sync.youtube.fetcher import CapturingYdlLogger

logger = get_logger(__name__)


PLAYLIST_URL = "https://www.youtube.com/playlist?list={id}"
WATCH_URL = "https://www.youtube.com/watch?v={id}"

_PLAYLIST_ID_PATTERN = re.compile(r"^(PL|OL|UU|FL|RD)[A-Za-z0-9_-]+$")

_NOT_FOUND_MARKERS = (
    "does not exist",
    "private",
    "unavailable",
    "not found",
    "404",
)


def extract_playlist_id(reference: str) -> str:
    """
    Extract the playlist ID from a URL or bare ID.

    Args:
        reference: Playlist URL or ID, as typed by the user.

    Returns:
        The playlist ID.

    Raises:
        ValidationError: If no playlist ID can be found.
    """
    reference = (reference or "").strip()

    if _PLAYLIST_ID_PATTERN.match(reference):
        return reference

    url = reference if "://" in reference else f"https://{reference}"
    parsed = urlparse(url)
    if parsed.netloc:
        values = parse_qs(parsed.query).get("list")
        if values and values[0].strip():
            return values[0].strip()

    raise ValidationError(
        "Could not extract playlist ID from URL",
        details={"reference": reference}
    )


class YouTubeCatalog:
    """
    Lists YouTube playlists.

    Attributes:
        _cookie_options: Extra yt-dlp options for private/unlisted playlists.
    """

    def __init__(self, cookie_options: dict[str, Any] | None = None) -> None:
        self._cookie_options = dict(cookie_options or {})

    def extract_playlist_id(self, reference: str) -> str:
        return extract_playlist_id(reference)

    def get_playlist(self, reference: str) -> SourcePlaylist:
        """
        Read a playlist and its entries in playlist order.

        Entries without an ID (deleted videos shown as placeholders) are
        skipped.

        Raises:
            ValidationError: If reference is not a playlist URL or ID.
            CatalogNotFoundError: If the playlist does not exist or is private.
            CatalogError: For any other yt-dlp failure.
        """
        playlist_id = self.extract_playlist_id(reference)
        info = self._extract(playlist_id)
        return self._to_playlist(playlist_id, info)

    def _extract(self, playlist_id: str) -> dict[str, Any]:
        yt_logger = CapturingYdlLogger()
        options = {
            "extract_flat": "in_playlist",
            "skip_download": True,
            "quiet": True,
            "no_warnings": True,
            "logger": yt_logger,
            **self._cookie_options,
        }

        try:
            with YoutubeDL(options) as ydl:
                info = ydl.extract_info(PLAYLIST_URL.format(id=playlist_id), download=False)
        except Exception as e:
            error_msg = str(e)
            if yt_logger.last_error and yt_logger.last_error not in error_msg:
                error_msg = f"{error_msg} | {yt_logger.last_error}"
            if any(marker in error_msg.lower() for marker in _NOT_FOUND_MARKERS):
                raise CatalogNotFoundError(
                    f"Playlist not found or not accessible: {playlist_id}",
                    details={"playlist_id": playlist_id, "original_error": error_msg}
                ) from e
            raise CatalogError(
                f"Failed to read playlist {playlist_id}: {error_msg}",
                details={"playlist_id": playlist_id, "original_error": error_msg}
            ) from e

        if not info:
            raise CatalogNotFoundError(
                f"Playlist not found or not accessible: {playlist_id}",
                details={"playlist_id": playlist_id}
            )
        return info

    @staticmethod
    def _to_playlist(playlist_id: str, info: dict[str, Any]) -> SourcePlaylist:
        items = []
        for entry in info.get("entries") or []:
            if not entry or not entry.get("id"):
                continue
            video_id = entry["id"]
            items.append(SourceItem(
                id=video_id,
                title=entry.get("title") or video_id,
                locator=WATCH_URL.format(id=video_id),
            ))

        if not items:
            logger.warning(f"Playlist {playlist_id} has no entries")

        return SourcePlaylist(
            id=info.get("id") or playlist_id,
            title=info.get("title") or playlist_id,
            items=tuple(items),
        )
