"""
Yoto REST API client.

Wraps the endpoints yoto-sync needs:

    GET  /content/mine                          List the account's MYO cards
    GET  /content/{cardId}                      Read one card with its chapters
    POST /content                               Create a card, or update one
                                                (cardId in the body)
    GET  /media/upload/{sha256}/transcoded      Transcode status of an upload
    GET  /media/transcode/audio/uploadUrl       Pre-signed upload URL

Every request carries the bearer token and the web app's Origin/Referer.
Non-success responses raise YotoApiError with the status code; a missing
card raises CardNotFoundError.

Usage:
    client = YotoClient(require_token(config.storage.auth_file), config.yoto)
    for container in client.list_containers():
        print(container.id, container.name)
"""

from typing import Any, Sequence

import requests

from yoto_sync.core.config import YotoConfig
from yoto_sync.core.exceptions import CardNotFoundError, YotoApiError
from yoto_sync.core.logger import get_logger
from yoto_sync.sync.models import Container, ContainerDetails, PublishedAsset, TargetItem
from yoto_sync.yoto.models import (
    asset_to_item,
    card_to_container,
    card_to_details,
    item_to_chapter,
    new_card_payload,
    updated_card_payload,
)

logger = get_logger(__name__)


class YotoClient:
    """
    Authenticated Yoto API client.

    Thread Safety:
        A requests.Session is shared by all calls. Uploads from several
        threads are fine; card writes happen once per run.

    Attributes:
        base_url: API base URL without trailing slash.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        token: str,
        config: YotoConfig | None = None,
        session: requests.Session | None = None
    ) -> None:
        config = config or YotoConfig()
        self.base_url = config.api_base_url.rstrip("/")
        self.web_base_url = config.web_base_url.rstrip("/")
        self.timeout = config.timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json;charset=UTF-8",
            "Origin": self.web_base_url,
            "Referer": f"{self.web_base_url}/",
        })

    # =========================================================================
    # Transport
    # =========================================================================

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """
        Send an API request and return the decoded JSON body.

        Raises:
            YotoApiError: On transport failure, non-2xx status or a body
                          that is not a JSON object.
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {path}")

        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise YotoApiError(
                f"Yoto API request failed: {e}",
                details={"method": method, "path": path, "original_error": str(e)}
            ) from e

        if not response.ok:
            text = response.text or response.reason or ""
            raise YotoApiError(
                f"Yoto API error ({response.status_code}): {text}",
                details={"method": method, "path": path},
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise YotoApiError(
                f"Yoto API returned invalid JSON for {path}",
                details={"method": method, "path": path},
                status_code=response.status_code
            ) from e

        if not isinstance(data, dict):
            raise YotoApiError(
                f"Unexpected Yoto API response for {path}",
                details={"method": method, "path": path},
                status_code=response.status_code
            )
        return data

    # =========================================================================
    # Cards
    # =========================================================================

    def list_cards(self) -> list[dict[str, Any]]:
        """Raw card summaries of the account."""
        return self._request("GET", "/content/mine").get("cards") or []

    def get_card(self, card_id: str) -> dict[str, Any]:
        """
        Raw card payload.

        Raises:
            CardNotFoundError: If the card does not exist.
        """
        try:
            data = self._request("GET", f"/content/{card_id}")
        except YotoApiError as e:
            if e.status_code == 404:
                raise CardNotFoundError(
                    f"Card not found: {card_id}",
                    details={"card_id": card_id},
                    status_code=404
                ) from e
            raise

        card = data.get("card")
        if not isinstance(card, dict):
            raise CardNotFoundError(f"Card not found: {card_id}", details={"card_id": card_id})
        return card

    def list_containers(self) -> list[Container]:
        return [card_to_container(card) for card in self.list_cards()]

    def get_container(self, container_id: str) -> ContainerDetails:
        return card_to_details(self.get_card(container_id))

    def create_container(self, name: str) -> Container:
        """Create an empty card named name."""
        data = self._request("POST", "/content", json=new_card_payload(name))
        card = data.get("card")
        if not isinstance(card, dict):
            raise YotoApiError("Yoto API did not return the created card", details={"title": name})
        return card_to_container(card)

    def replace_items(self, container_id: str, items: Sequence[TargetItem]) -> None:
        """
        Replace the chapter list of a card in a single write.

        The card is re-read first so that its title, cover and every other
        content field are written back unchanged.
        """
        existing = self.get_card(container_id)
        chapters = [item_to_chapter(item) for item in items]
        self._request("POST", "/content", json=updated_card_payload(existing, chapters))
        logger.debug(f"Wrote {len(chapters)} chapters to card {container_id}")

    def new_item(self, title: str, asset: PublishedAsset, key: str) -> TargetItem:
        return asset_to_item(title, asset, key)

    def edit_url(self, card_id: str) -> str:
        return f"{self.web_base_url}/card/{card_id}/edit"

    # =========================================================================
    # Media
    # =========================================================================

    def get_transcode_status(self, sha256: str) -> dict[str, Any]:
        """Raw "transcode" object for an upload, or {} if unknown."""
        data = self._request("GET", f"/media/upload/{sha256}/transcoded", params={"loudnorm": "false"})
        return data.get("transcode") or {}

    def get_upload_url(self, sha256: str, filename: str) -> str:
        """
        Pre-signed URL to PUT the file to.

        Raises:
            YotoApiError: If the response has no upload URL.
        """
        data = self._request(
            "GET",
            "/media/transcode/audio/uploadUrl",
            params={"sha256": sha256, "filename": filename}
        )
        upload_url = (data.get("upload") or {}).get("uploadUrl")
        if not upload_url:
            raise YotoApiError(
                "Yoto API did not return an upload URL",
                details={"sha256": sha256, "response": data}
            )
        return upload_url

    def upload_file(self, upload_url: str, content: bytes, content_type: str = "audio/mpeg") -> None:
        """
        PUT content to a pre-signed URL (no API headers).

        Raises:
            YotoApiError: If the upload fails.
        """
        try:
            response = requests.put(
                upload_url,
                data=content,
                headers={"Content-Type": content_type},
                timeout=max(self.timeout, 300.0)
            )
        except requests.RequestException as e:
            raise YotoApiError(f"Upload failed: {e}", details={"original_error": str(e)}) from e

        if not response.ok:
            raise YotoApiError(
                f"Upload failed ({response.status_code}): {response.reason}",
                status_code=response.status_code
            )
