"""
YouTube access for yoto-sync.

Components:
    - YouTubeCatalog: Reads playlist entries (yt-dlp flat extraction)
    - YouTubeFetcher: Downloads and converts audio (yt-dlp + FFmpeg)

Usage:
    from yoto_sync.youtube import YouTubeCatalog, YouTubeFetcher

    playlist = YouTubeCatalog().get_playlist(url)
    path = YouTubeFetcher(config.download).fetch(playlist.items[0], workspace)
"""

from yoto_sync.youtube.catalog import YouTubeCatalog, extract_playlist_id
from yoto_sync.youtube.fetcher import YouTubeFetcher, cookie_options

__all__ = [
    "YouTubeCatalog",
    "YouTubeFetcher",
    "cookie_options",
    "extract_playlist_id",
]
