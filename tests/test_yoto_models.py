# tests/test_yoto_models.py
"""Test conversion of Yoto API payloads"""

import pytest

from yoto_sync.core.exceptions import YotoApiError
from yoto_sync.sync.models import PublishedAsset, TargetItem
from yoto_sync.yoto.models import (
    DEFAULT_COVER_URL,
    asset_to_item,
    build_chapter,
    card_to_details,
    chapter_to_item,
    item_to_chapter,
    new_card_payload,
    updated_card_payload,
)


@pytest.fixture
def sample_card():
    """Card payload as returned by GET /content/{cardId}"""
    return {
        "cardId": "abc12",
        "title": "Bedtime Songs",
        "content": {
            "activity": "yoto_Player",
            "restricted": True,
            "chapters": [
                {
                    "key": "00",
                    "title": "Twinkle Twinkle",
                    "display": {"icon16x16": "yoto:#star"},
                    "tracks": [{
                        "key": "01",
                        "title": "Twinkle Twinkle",
                        "trackUrl": "yoto:#sha-star",
                        "duration": 95,
                        "fileSize": 4000,
                    }],
                },
                {
                    "key": "01",
                    "title": "",
                    "tracks": [{"key": "01", "title": "Brahms Lullaby", "trackUrl": "yoto:#sha-brahms"}],
                },
            ],
        },
        "metadata": {"cover": {"imageL": "https://example.com/cover.png"}, "author": "me"},
    }


class TestCardToDetails:
    """Test reading cards"""

    def test_chapters_in_order(self, sample_card):
        """Chapters become TargetItems in card order"""
        details = card_to_details(sample_card)

        assert details.id == "abc12"
        assert details.name == "Bedtime Songs"
        assert [item.key for item in details.items] == ["00", "01"]

    def test_chapter_fields(self, sample_card):
        """Media reference, icon and duration come from the chapter or its first track"""
        first, second = card_to_details(sample_card).items

        assert first.media_ref == "yoto:#sha-star"
        assert first.icon == "yoto:#star"
        assert first.duration == 95
        assert first.file_size == 4000
        assert second.title == "Brahms Lullaby"
        assert second.icon is None

    def test_raw_payload_kept(self, sample_card):
        """The untouched chapter payload is kept for writing back"""
        chapter = sample_card["content"]["chapters"][0]

        item = chapter_to_item(chapter)

        assert item.raw is chapter
        assert item_to_chapter(item) is chapter

    def test_card_without_content(self):
        """A card without content has no chapters"""
        assert card_to_details({"cardId": "x", "title": "Empty"}).items == ()

    def test_missing_card_id(self):
        """A card without cardId is malformed"""
        with pytest.raises(YotoApiError, match="cardId"):
            card_to_details({"title": "No id"})

    def test_missing_chapter_key(self):
        """A chapter without key is malformed"""
        with pytest.raises(YotoApiError, match="key"):
            chapter_to_item({"title": "No key"})


class TestBuildChapter:
    """Test chapters for new uploads"""

    def test_single_track(self):
        """A new chapter has one stereo opus track pointing at the asset"""
        chapter = build_chapter("Free Bird", "sha-free", "03", duration=540, file_size=9000)

        assert chapter["key"] == "03"
        assert chapter["title"] == "Free Bird"
        assert chapter["duration"] == 540
        track = chapter["tracks"][0]
        assert track["trackUrl"] == "yoto:#sha-free"
        assert track["format"] == "opus"
        assert track["type"] == "audio"
        assert track["key"] == "01"
        assert track["fileSize"] == 9000
        assert "display" not in chapter

    def test_unknown_duration_omitted(self):
        """Zero duration and size are left out"""
        chapter = build_chapter("Free Bird", "sha-free", "03")

        assert "duration" not in chapter
        assert "fileSize" not in chapter["tracks"][0]

    def test_asset_to_item(self):
        """A published asset becomes a TargetItem carrying its chapter"""
        item = asset_to_item("Free Bird", PublishedAsset(asset_ref="sha-free", duration=540), "00")

        assert item.media_ref == "yoto:#sha-free"
        assert item.duration == 540
        assert item.file_size is None
        assert item_to_chapter(item) == item.raw

    def test_item_without_raw(self):
        """Items built in code are converted to a chapter"""
        chapter = item_to_chapter(TargetItem(key="02", title="Manual", media_ref="yoto:#sha-m"))

        assert chapter["tracks"][0]["trackUrl"] == "yoto:#sha-m"


class TestCardPayloads:
    """Test create and update bodies"""

    def test_new_card(self):
        """A new card is an empty player card with the default cover"""
        payload = new_card_payload("Road Trip")

        assert payload["title"] == "Road Trip"
        assert payload["content"]["chapters"] == []
        assert payload["content"]["activity"] == "yoto_Player"
        assert payload["metadata"]["cover"]["imageL"] == DEFAULT_COVER_URL
        assert "cardId" not in payload

    def test_update_keeps_other_fields(self, sample_card):
        """Only the chapters change when a card is updated"""
        chapters = [build_chapter("Free Bird", "sha-free", "00")]

        payload = updated_card_payload(sample_card, chapters)

        assert payload["cardId"] == "abc12"
        assert payload["title"] == "Bedtime Songs"
        assert payload["content"]["chapters"] == chapters
        assert payload["content"]["restricted"] is True
        assert payload["metadata"] == sample_card["metadata"]
        assert len(sample_card["content"]["chapters"]) == 2
