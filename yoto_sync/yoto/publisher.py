"""
Audio upload and transcoding on Yoto.

Publishing a file:
    1. Hash the file (SHA-256). Yoto identifies uploads by content hash.
    2. If a transcode for that hash is already complete, reuse it: nothing
       is uploaded.
    3. Otherwise request a pre-signed upload URL and PUT the bytes.
    4. Poll the transcode status until it completes, fails, or the polling
       budget (publish.max_poll_attempts × publish.poll_interval) runs out.

Usage:
    publisher = YotoPublisher(client, config.publish)
    asset = publisher.publish(Path("/tmp/yoto-sync-x/dQw4w9WgXcQ.mp3"))
    chapter = client.new_item("Never Gonna Give You Up", asset, key="00")
"""

import hashlib
import time
from pathlib import Path
from typing import Any

from yoto_sync.core.config import PublishConfig
from yoto_sync.core.exceptions import PublishFailed, PublishTimeout, YotoApiError
from yoto_sync.core.logger import get_logger
from yoto_sync.sync.models import PublishedAsset
from yoto_sync.yoto.client import YotoClient

logger = get_logger(__name__)


CONTENT_TYPES = {
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".opus": "audio/ogg",
    ".ogg": "audio/ogg",
    ".wav": "audio/wav",
    ".flac": "audio/flac",
}

_HASH_CHUNK_SIZE = 1024 * 1024


def file_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _phase(transcode: dict[str, Any]) -> str | None:
    return (transcode.get("progress") or {}).get("phase")


def _completed_asset(transcode: dict[str, Any], already_published: bool) -> PublishedAsset | None:
    if _phase(transcode) != "complete" or not transcode.get("transcodedSha256"):
        return None
    info = transcode.get("transcodedInfo") or {}
    return PublishedAsset(
        asset_ref=transcode["transcodedSha256"],
        duration=info.get("duration") or 0,
        file_size=info.get("fileSize") or 0,
        already_published=already_published,
    )


class YotoPublisher:
    """
    Uploads audio files to Yoto and waits for transcoding.

    Attributes:
        client: Authenticated Yoto API client.
        poll_interval: Seconds between status checks.
        max_poll_attempts: Status checks before PublishTimeout.
    """

    def __init__(
        self,
        client: YotoClient,
        config: PublishConfig | None = None,
        sleep=time.sleep
    ) -> None:
        config = config or PublishConfig()
        self.client = client
        self.poll_interval = config.poll_interval
        self.max_poll_attempts = config.max_poll_attempts
        self._sleep = sleep

    def publish(self, path: Path) -> PublishedAsset:
        """
        Publish one audio file.

        Args:
            path: Downloaded audio file.

        Returns:
            PublishedAsset; already_published is True when Yoto already had
            a completed transcode for this exact content.

        Raises:
            PublishFailed: If hashing, uploading or transcoding fails.
            PublishTimeout: If transcoding does not finish in time.
        """
        try:
            sha256 = file_sha256(path)
        except OSError as e:
            raise PublishFailed(f"Cannot read {path.name}: {e}", details={"path": str(path)}) from e

        existing = self._existing_transcode(sha256)
        if existing is not None:
            logger.debug(f"Already transcoded: {path.name} ({sha256[:12]})")
            return existing

        try:
            upload_url = self.client.get_upload_url(sha256, path.name)
            self.client.upload_file(
                upload_url,
                path.read_bytes(),
                content_type=CONTENT_TYPES.get(path.suffix.lower(), "application/octet-stream")
            )
        except (YotoApiError, OSError) as e:
            raise PublishFailed(
                f"Upload of {path.name} failed: {e}",
                details={"path": str(path), "sha256": sha256, "original_error": str(e)}
            ) from e

        logger.debug(f"Uploaded {path.name}, waiting for transcode")
        return self._wait_for_transcode(sha256, path)

    def _existing_transcode(self, sha256: str) -> PublishedAsset | None:
        try:
            transcode = self.client.get_transcode_status(sha256)
        except YotoApiError as e:
            # Unknown hashes are reported as errors: treat as not uploaded
            logger.debug(f"No existing transcode for {sha256[:12]}: {e.message}")
            return None
        return _completed_asset(transcode, already_published=True)

    def _wait_for_transcode(self, sha256: str, path: Path) -> PublishedAsset:
        for attempt in range(self.max_poll_attempts):
            self._sleep(self.poll_interval)

            try:
                transcode = self.client.get_transcode_status(sha256)
            except YotoApiError as e:
                raise PublishFailed(
                    f"Could not check transcode status of {path.name}: {e}",
                    details={"sha256": sha256, "original_error": str(e)}
                ) from e

            asset = _completed_asset(transcode, already_published=False)
            if asset is not None:
                return asset

            if _phase(transcode) == "failed":
                raise PublishFailed(
                    f"Audio transcode failed: {path.name}",
                    details={"sha256": sha256}
                )

            logger.debug(f"Processing {path.name}... ({attempt + 1}/{self.max_poll_attempts})")

        raise PublishTimeout(
            f"Audio transcode timed out: {path.name}",
            details={
                "sha256": sha256,
                "attempts": self.max_poll_attempts,
                "poll_interval": self.poll_interval,
            }
        )
