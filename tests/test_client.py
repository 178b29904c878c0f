# tests/test_client.py
"""Test the Yoto API client"""

from unittest.mock import Mock, patch

import pytest
import requests

from yoto_sync.core.config import YotoConfig
from yoto_sync.core.exceptions import CardNotFoundError, YotoApiError
from yoto_sync.sync.models import TargetItem
from yoto_sync.yoto.client import YotoClient


def response(status=200, body=None, text=""):
    resp = Mock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.text = text
    resp.reason = "Reason"
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


@pytest.fixture
def session():
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    config = YotoConfig(api_base_url="https://api.test", web_base_url="https://my.test", timeout=5)
    return YotoClient("tok123", config, session=session)


class TestTransport:
    """Test request handling"""

    def test_headers(self, client, session):
        """Requests carry the bearer token and the web app origin"""
        assert session.headers["Authorization"] == "Bearer tok123"
        assert session.headers["Origin"] == "https://my.test"
        assert session.headers["Referer"] == "https://my.test/"
        assert session.headers["Content-Type"].startswith("application/json")

    def test_error_status(self, client, session):
        """Non-2xx responses raise YotoApiError with the status"""
        session.request.return_value = response(401, text="Unauthorized")

        with pytest.raises(YotoApiError) as exc_info:
            client.list_cards()

        assert exc_info.value.status_code == 401
        assert "401" in exc_info.value.message

    def test_transport_error(self, client, session):
        """Connection failures raise YotoApiError without status"""
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(YotoApiError) as exc_info:
            client.list_cards()

        assert exc_info.value.status_code is None

    def test_invalid_json(self, client, session):
        """A body that is not JSON raises YotoApiError"""
        session.request.return_value = response(200, body=ValueError("no json"))

        with pytest.raises(YotoApiError, match="invalid JSON"):
            client.list_cards()


class TestCards:
    """Test card operations"""

    def test_list_containers(self, client, session):
        """Cards of the account become Containers"""
        session.request.return_value = response(200, {"cards": [
            {"cardId": "c1", "title": "Bedtime Songs"},
            {"cardId": "c2", "title": "Workout"},
        ]})

        containers = client.list_containers()

        assert [(c.id, c.name) for c in containers] == [("c1", "Bedtime Songs"), ("c2", "Workout")]
        session.request.assert_called_once_with("GET", "https://api.test/content/mine", timeout=5)

    def test_get_container(self, client, session):
        """A card is read with its chapters"""
        session.request.return_value = response(200, {"card": {
            "cardId": "c1",
            "title": "Bedtime Songs",
            "content": {"chapters": [{"key": "00", "title": "Lullaby"}]},
        }})

        details = client.get_container("c1")

        assert details.items[0].title == "Lullaby"

    def test_get_missing_card(self, client, session):
        """404 raises CardNotFoundError"""
        session.request.return_value = response(404, text="Not Found")

        with pytest.raises(CardNotFoundError):
            client.get_card("gone")

    def test_get_card_without_card(self, client, session):
        """A response without a card raises CardNotFoundError"""
        session.request.return_value = response(200, {})

        with pytest.raises(CardNotFoundError):
            client.get_card("gone")

    def test_create_container(self, client, session):
        """Creating posts a new card and returns it"""
        session.request.return_value = response(200, {"card": {"cardId": "new1", "title": "Road Trip"}})

        container = client.create_container("Road Trip")

        assert container.id == "new1"
        method, url = session.request.call_args[0]
        assert (method, url) == ("POST", "https://api.test/content")
        body = session.request.call_args[1]["json"]
        assert body["title"] == "Road Trip"
        assert "cardId" not in body

    def test_replace_items(self, client, session):
        """Replacing re-reads the card and posts every chapter in one request"""
        existing = {
            "cardId": "c1",
            "title": "Bedtime Songs",
            "content": {"chapters": [], "restricted": True},
            "metadata": {"cover": {"imageL": "cover.png"}},
        }
        session.request.side_effect = [response(200, {"card": existing}), response(200, {"card": existing})]
        kept_chapter = {"key": "00", "title": "Lullaby", "display": {"icon16x16": "yoto:#moon"}}
        items = [
            TargetItem(key="00", title="Lullaby", raw=kept_chapter),
            TargetItem(key="01", title="Free Bird", media_ref="yoto:#sha-free"),
        ]

        client.replace_items("c1", items)

        assert session.request.call_count == 2
        body = session.request.call_args[1]["json"]
        assert body["cardId"] == "c1"
        assert body["metadata"] == existing["metadata"]
        assert body["content"]["chapters"][0] is kept_chapter
        assert body["content"]["chapters"][1]["tracks"][0]["trackUrl"] == "yoto:#sha-free"

    def test_edit_url(self, client):
        assert client.edit_url("c1") == "https://my.test/card/c1/edit"


class TestMedia:
    """Test upload endpoints"""

    def test_transcode_status(self, client, session):
        """The transcode object is returned"""
        session.request.return_value = response(200, {"transcode": {"transcodedSha256": "t1"}})

        assert client.get_transcode_status("abc") == {"transcodedSha256": "t1"}
        assert session.request.call_args[0][1] == "https://api.test/media/upload/abc/transcoded"
        assert session.request.call_args[1]["params"] == {"loudnorm": "false"}

    def test_upload_url(self, client, session):
        """The pre-signed URL is extracted"""
        session.request.return_value = response(200, {"upload": {"uploadUrl": "https://s3/put"}})

        assert client.get_upload_url("abc", "v1.mp3") == "https://s3/put"
        assert session.request.call_args[1]["params"] == {"sha256": "abc", "filename": "v1.mp3"}

    def test_upload_url_missing(self, client, session):
        """A response without URL raises YotoApiError"""
        session.request.return_value = response(200, {"upload": {}})

        with pytest.raises(YotoApiError):
            client.get_upload_url("abc", "v1.mp3")

    @patch("yoto_sync.yoto.client.requests.put")
    def test_upload_file(self, mock_put, client):
        """Files are PUT without the API headers"""
        mock_put.return_value = response(200)

        client.upload_file("https://s3/put", b"data", content_type="audio/mpeg")

        mock_put.assert_called_once()
        assert mock_put.call_args[1]["headers"] == {"Content-Type": "audio/mpeg"}
        assert mock_put.call_args[1]["data"] == b"data"

    @patch("yoto_sync.yoto.client.requests.put")
    def test_upload_file_error(self, mock_put, client):
        """Upload failures raise YotoApiError"""
        mock_put.return_value = response(403)

        with pytest.raises(YotoApiError) as exc_info:
            client.upload_file("https://s3/put", b"data")

        assert exc_info.value.status_code == 403
