# tests/test_catalog.py
"""Test YouTube playlist listing"""

from unittest.mock import MagicMock, patch

import pytest

from yoto_sync.core.exceptions import CatalogError, CatalogNotFoundError, ValidationError
from yoto_sync.youtube.catalog import YouTubeCatalog, extract_playlist_id


def patched_ydl(mock_ydl_class, info=None, error=None):
    """Make YoutubeDL(...) return a context manager whose extract_info gives info"""
    ydl = MagicMock()
    if error is not None:
        ydl.extract_info.side_effect = error
    else:
        ydl.extract_info.return_value = info
    mock_ydl_class.return_value.__enter__.return_value = ydl
    return ydl


class TestExtractPlaylistId:
    """Test playlist reference parsing"""

    @pytest.mark.parametrize("reference, expected", [
        ("https://www.youtube.com/playlist?list=PLabc123_-x", "PLabc123_-x"),
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ&list=PLxyz", "PLxyz"),
        ("https://music.youtube.com/playlist?list=OLAK5uy_abc", "OLAK5uy_abc"),
        ("youtube.com/playlist?list=PLnoscheme", "PLnoscheme"),
        ("  PLbare_id-123  ", "PLbare_id-123"),
        ("UUchannelUploads", "UUchannelUploads"),
    ])
    def test_valid_references(self, reference, expected):
        """Playlist IDs are found in URLs and bare IDs"""
        assert extract_playlist_id(reference) == expected

    @pytest.mark.parametrize("reference", [
        "",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/playlist?list=",
        "just some words",
        "XXnot_a_prefix",
    ])
    def test_invalid_references(self, reference):
        """References without a playlist ID are rejected"""
        with pytest.raises(ValidationError, match="Could not extract playlist ID"):
            extract_playlist_id(reference)


class TestGetPlaylist:
    """Test reading playlists through yt-dlp"""

    @patch("yoto_sync.youtube.catalog.YoutubeDL")
    def test_entries_in_order(self, mock_ydl_class):
        """Entries are returned in playlist order with watch URLs"""
        ydl = patched_ydl(mock_ydl_class, info={
            "id": "PLroadtrip",
            "title": "Road Trip",
            "entries": [
                {"id": "aaa", "title": "Sweet Home Alabama"},
                {"id": "bbb", "title": "Hotel California"},
            ],
        })

        playlist = YouTubeCatalog().get_playlist("https://www.youtube.com/playlist?list=PLroadtrip")

        assert playlist.id == "PLroadtrip"
        assert playlist.title == "Road Trip"
        assert [item.id for item in playlist.items] == ["aaa", "bbb"]
        assert playlist.items[0].locator == "https://www.youtube.com/watch?v=aaa"
        ydl.extract_info.assert_called_once_with(
            "https://www.youtube.com/playlist?list=PLroadtrip", download=False
        )

    @patch("yoto_sync.youtube.catalog.YoutubeDL")
    def test_flat_extraction_with_cookies(self, mock_ydl_class):
        """Playlists are listed flat, with the configured cookie options"""
        patched_ydl(mock_ydl_class, info={"id": "PLx", "title": "X", "entries": []})

        YouTubeCatalog({"cookiefile": "/tmp/cookies.txt"}).get_playlist("PLx")

        options = mock_ydl_class.call_args[0][0]
        assert options["extract_flat"] == "in_playlist"
        assert options["cookiefile"] == "/tmp/cookies.txt"

    @patch("yoto_sync.youtube.catalog.YoutubeDL")
    def test_placeholder_entries_skipped(self, mock_ydl_class):
        """Entries without an ID are skipped; missing titles fall back to the ID"""
        patched_ydl(mock_ydl_class, info={
            "id": "PLx",
            "entries": [None, {"title": "[Deleted video]"}, {"id": "ccc"}],
        })

        playlist = YouTubeCatalog().get_playlist("PLx")

        assert [(item.id, item.title) for item in playlist.items] == [("ccc", "ccc")]
        assert playlist.title == "PLx"

    @patch("yoto_sync.youtube.catalog.YoutubeDL")
    def test_empty_playlist(self, mock_ydl_class):
        """An empty playlist is returned without error"""
        patched_ydl(mock_ydl_class, info={"id": "PLx", "title": "Empty", "entries": []})

        assert YouTubeCatalog().get_playlist("PLx").items == ()

    @patch("yoto_sync.youtube.catalog.YoutubeDL")
    def test_private_playlist(self, mock_ydl_class):
        """Missing or private playlists raise CatalogNotFoundError"""
        patched_ydl(mock_ydl_class, error=Exception("ERROR: The playlist does not exist."))

        with pytest.raises(CatalogNotFoundError):
            YouTubeCatalog().get_playlist("PLgone")

    @patch("yoto_sync.youtube.catalog.YoutubeDL")
    def test_no_info(self, mock_ydl_class):
        """yt-dlp returning nothing is treated as not found"""
        patched_ydl(mock_ydl_class, info=None)

        with pytest.raises(CatalogNotFoundError):
            YouTubeCatalog().get_playlist("PLgone")

    @patch("yoto_sync.youtube.catalog.YoutubeDL")
    def test_other_errors(self, mock_ydl_class):
        """Other yt-dlp failures raise CatalogError"""
        patched_ydl(mock_ydl_class, error=Exception("Connection reset by peer"))

        with pytest.raises(CatalogError) as exc_info:
            YouTubeCatalog().get_playlist("PLx")

        assert not isinstance(exc_info.value, CatalogNotFoundError)

    @patch("yoto_sync.youtube.catalog.YoutubeDL")
    def test_invalid_reference_before_network(self, mock_ydl_class):
        """A bad reference fails before yt-dlp is called"""
        with pytest.raises(ValidationError):
            YouTubeCatalog().get_playlist("https://www.youtube.com/watch?v=abc")

        mock_ydl_class.assert_not_called()
