"""Test configuration and fixtures"""

import tempfile
import threading
from pathlib import Path

import pytest

from yoto_sync.core.exceptions import CardNotFoundError, PersistFailed
from yoto_sync.sync.models import (
    Container,
    ContainerDetails,
    PublishedAsset,
    SourceItem,
    SourcePlaylist,
    TargetItem,
)


# =============================================================================
# Fakes
# =============================================================================

class FakeCatalog:
    """Serves one playlist for any reference, or raises the configured error."""

    def __init__(self, playlist=None, error=None):
        self.playlist = playlist
        self.error = error
        self.requests = []

    def extract_playlist_id(self, reference):
        return self.playlist.id

    def get_playlist(self, reference):
        self.requests.append(reference)
        if self.error is not None:
            raise self.error
        return self.playlist


class FakeCards:
    """In-memory card service."""

    def __init__(self):
        self.cards = {}
        self.replace_calls = []
        self.created = []
        self.replace_error = None
        self._next_id = 1

    def add_card(self, card_id, name, titles=()):
        items = tuple(
            TargetItem(key=f"{index:02d}", title=title, media_ref=f"yoto:#{card_id}-{index}",
                       raw={"key": f"{index:02d}", "title": title})
            for index, title in enumerate(titles)
        )
        self.cards[card_id] = ContainerDetails(id=card_id, name=name, items=items)
        return self.cards[card_id]

    def list_containers(self):
        return [Container(id=card.id, name=card.name) for card in self.cards.values()]

    def get_container(self, container_id):
        if container_id not in self.cards:
            raise CardNotFoundError(f"Card not found: {container_id}", status_code=404)
        return self.cards[container_id]

    def create_container(self, name):
        card_id = f"new-{self._next_id}"
        self._next_id += 1
        self.cards[card_id] = ContainerDetails(id=card_id, name=name)
        self.created.append(name)
        return Container(id=card_id, name=name)

    def replace_items(self, container_id, items):
        self.replace_calls.append((container_id, list(items)))
        if self.replace_error is not None:
            raise self.replace_error
        card = self.cards[container_id]
        self.cards[container_id] = ContainerDetails(id=card.id, name=card.name, items=tuple(items))

    def new_item(self, title, asset, key):
        return TargetItem(key=key, title=title, media_ref=f"yoto:#{asset.asset_ref}")


class FakeFetcher:
    """Writes a small file per item; fails for the IDs in fail_ids."""

    def __init__(self, fail_ids=(), error=None):
        self.fail_ids = set(fail_ids)
        self.error = error
        self.fetched = []
        self.workspaces = []
        self._lock = threading.Lock()

    def fetch(self, item, workspace):
        with self._lock:
            self.fetched.append(item.id)
            self.workspaces.append(workspace)
        if item.id in self.fail_ids:
            raise self.error or RuntimeError(f"cannot download {item.id}")
        path = workspace / f"{item.id}.mp3"
        path.write_bytes(item.id.encode("utf-8"))
        return path


class FakePublisher:
    """Publishes every file as sha-<stem>; IDs in known are already published."""

    def __init__(self, fail_ids=(), known=()):
        self.fail_ids = set(fail_ids)
        self.known = set(known)
        self.published = []
        self._lock = threading.Lock()

    def publish(self, path):
        with self._lock:
            self.published.append(path.stem)
        if path.stem in self.fail_ids:
            raise RuntimeError(f"cannot upload {path.name}")
        return PublishedAsset(
            asset_ref=f"sha-{path.stem}",
            duration=120,
            file_size=1000,
            already_published=path.stem in self.known,
        )


class InMemoryAssociations:
    """Association repository backed by a dict.

    fail may be True (raise PersistFailed) or an exception to raise.
    """

    def __init__(self, fail=False):
        self.fail = fail
        self.saved = {}

    def get(self, source_id):
        return self.saved.get(source_id)

    def upsert(self, association):
        if isinstance(self.fail, Exception):
            raise self.fail
        if self.fail:
            raise PersistFailed("disk full")
        self.saved[association.source_id] = association


class ScriptedPrompt:
    """
    Prompt answering from scripted queues.

    select answers are 0-based indexes into the offered choices. A free_text
    answer of None accepts the default. Running out of answers fails the test.
    """

    def __init__(self, confirm=(), select=(), text=()):
        self.confirm_answers = list(confirm)
        self.select_answers = list(select)
        self.text_answers = list(text)
        self.messages = []
        self.offered = []
        self.text_defaults = []

    def confirm(self, message, default=True):
        self.messages.append(message)
        if not self.confirm_answers:
            raise AssertionError(f"Unexpected confirm: {message}")
        return self.confirm_answers.pop(0)

    def select_one(self, message, choices):
        self.messages.append(message)
        self.offered.append([label for label, _ in choices])
        if not self.select_answers:
            raise AssertionError(f"Unexpected select: {message}")
        return choices[self.select_answers.pop(0)][1]

    def free_text(self, message, default=None):
        self.messages.append(message)
        self.text_defaults.append(default)
        if not self.text_answers:
            raise AssertionError(f"Unexpected text prompt: {message}")
        answer = self.text_answers.pop(0)
        if answer is None:
            return default or ""
        return answer


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def make_playlist():
    """Build a SourcePlaylist from titles (video IDs v1, v2, ...)"""
    def _make(*titles, playlist_id="PLroadtrip", title="Road Trip"):
        items = tuple(
            SourceItem(
                id=f"v{number}",
                title=item_title,
                locator=f"https://www.youtube.com/watch?v=v{number}",
            )
            for number, item_title in enumerate(titles, start=1)
        )
        return SourcePlaylist(id=playlist_id, title=title, items=items)
    return _make


@pytest.fixture
def cards():
    """Empty in-memory card service"""
    return FakeCards()


@pytest.fixture
def associations():
    """Empty in-memory association repository"""
    return InMemoryAssociations()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def make_prompt():
    """ScriptedPrompt factory: make_prompt(confirm=[True], select=[0], text=[None])"""
    return ScriptedPrompt


@pytest.fixture
def make_catalog():
    """FakeCatalog factory"""
    return FakeCatalog
