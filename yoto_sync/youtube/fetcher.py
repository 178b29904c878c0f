"""
Audio download for yoto-sync.

Downloads one playlist entry with yt-dlp into the run's temporary workspace
and converts it to the configured audio format ({video_id}.mp3 by default).

A failed attempt is classified from yt-dlp's message and retry_delay()
decides whether another attempt is worth it:

    RATE_LIMITED        one retry after 30s
    FORBIDDEN           short randomized delay (403, empty data)
    EMPTY_FILE          short randomized delay
    FORMAT_UNAVAILABLE  short randomized delay
    NETWORK_ERROR       exponential backoff with jitter
    AGE_RESTRICTED      one retry, only with cookies configured
    VIDEO_UNAVAILABLE   never
    UNKNOWN             one retry

Usage:
    fetcher = YouTubeFetcher(config.download)
    path = fetcher.fetch(item, workspace)
"""

import random
import time
from enum import Enum, auto
from pathlib import Path
from typing import Any, Optional

from yt_dlp import YoutubeDL

from yoto_sync.core.config import DownloadConfig
from yoto_sync.core.exceptions import FetchFailed
from yoto_sync.core.logger import get_logger
from yoto_sync.sync.models import SourceItem

logger = get_logger(__name__)


MAX_RETRIES = 3
BASE_DELAY = 1.5
MAX_DELAY = 15.0
JITTER_FACTOR = 0.3
RATE_LIMIT_WAIT = 30.0

PARTIAL_SUFFIXES = (".part", ".ytdl", ".webm", ".m4a", ".opus", ".mp3", ".mp4", ".ogg", ".wav", ".flac")


class ErrorType(Enum):
    RATE_LIMITED = auto()
    FORBIDDEN = auto()
    FORMAT_UNAVAILABLE = auto()
    AGE_RESTRICTED = auto()
    NETWORK_ERROR = auto()
    VIDEO_UNAVAILABLE = auto()
    EMPTY_FILE = auto()
    UNKNOWN = auto()


# Checked in order. YouTube's rate limit text also contains
# "video unavailable", so RATE_LIMITED has to come first.
ERROR_KEYWORDS: list[tuple[ErrorType, tuple[str, ...]]] = [
    (ErrorType.RATE_LIMITED, ("rate-limited", "rate limit", "429", "too many requests", "try again later")),
    (ErrorType.FORBIDDEN, ("403", "forbidden", "did not get any data")),
    (ErrorType.FORMAT_UNAVAILABLE, ("requested format is not available", "format unavailable",
                                    "format not available")),
    (ErrorType.AGE_RESTRICTED, ("sign in", "confirm your age", "age-restricted")),
    (ErrorType.NETWORK_ERROR, ("connection", "timeout", "timed out", "network", "urlopen error")),
    (ErrorType.VIDEO_UNAVAILABLE, ("video unavailable", "private video", "removed", "deleted", "does not exist")),
    (ErrorType.EMPTY_FILE, ("file is empty", "empty file")),
]


def classify_error(error_message: str) -> ErrorType:
    """Map a yt-dlp error message to the ErrorType that drives retries."""
    text = error_message.lower()
    for error_type, keywords in ERROR_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return error_type
    return ErrorType.UNKNOWN


def calculate_backoff(attempt: int, base_delay: float = BASE_DELAY) -> float:
    """Exponential delay for a 0-based attempt, capped at MAX_DELAY, +-30% jitter, never under 0.5s."""
    capped = min(base_delay * 2 ** attempt, MAX_DELAY)
    return max(0.5, capped * (1 + JITTER_FACTOR * random.uniform(-1, 1)))


def retry_delay(error_type: ErrorType, attempt: int, has_cookies: bool) -> Optional[float]:
    """
    Seconds to wait before the next attempt, or None to give up now.

    attempt is the 0-based number of the attempt that just failed.
    """
    first = attempt == 0
    if error_type in (ErrorType.FORBIDDEN, ErrorType.EMPTY_FILE):
        return BASE_DELAY + random.random()
    if error_type is ErrorType.FORMAT_UNAVAILABLE:
        return 1.0 + random.random()
    if error_type is ErrorType.NETWORK_ERROR:
        return calculate_backoff(attempt)
    if error_type is ErrorType.RATE_LIMITED:
        if first:
            logger.warning(
                "YouTube rate limiting detected. Consider reducing sync.threads "
                "or waiting before re-running."
            )
            return RATE_LIMIT_WAIT
        return None
    if error_type is ErrorType.AGE_RESTRICTED:
        if has_cookies and first:
            logger.warning("Age-restricted video, the configured cookies may be expired")
            return 1.0
        logger.warning(
            "Age-restricted videos need cookies: set download.cookie_file "
            "or download.cookies_from_browser in config.yaml"
        )
        return None
    if error_type is ErrorType.UNKNOWN and first:
        return BASE_DELAY
    return None


def cookie_options(options: DownloadConfig) -> dict[str, Any]:
    """yt-dlp options for the configured cookie source (file wins over browser)."""
    if options.cookie_file is not None:
        return {"cookiefile": str(options.cookie_file)}
    if options.cookies_from_browser:
        return {"cookiesfrombrowser": (options.cookies_from_browser,)}
    return {}


class CapturingYdlLogger:
    """
    yt-dlp logger that keeps its chatter off the terminal.

    yt-dlp prints some errors to stderr even with quiet=True. Those are
    remembered in last_error so they can be attached to the failure, and
    echoed to our log only when echo_errors is set.
    """

    def __init__(self, echo_errors: bool = False):
        self.echo_errors = echo_errors
        self.last_error: Optional[str] = None

    def debug(self, msg: str) -> None:
        pass

    info = warning = debug

    def error(self, msg: str) -> None:
        self.last_error = msg
        if self.echo_errors:
            logger.error(msg)


class YouTubeFetcher:
    """
    Downloads the audio of single YouTube videos.

    fetch() may run on several threads at once as long as each call handles
    a different video ID.
    """

    def __init__(self, options: DownloadConfig, sleep=time.sleep) -> None:
        self._options = options
        self._sleep = sleep

        if options.cookie_file is not None:
            logger.debug(f"Using cookie file: {options.cookie_file}")
        elif options.cookies_from_browser:
            logger.debug(f"Using cookies from browser: {options.cookies_from_browser}")

    @property
    def has_cookies(self) -> bool:
        return self._options.cookie_file is not None or bool(self._options.cookies_from_browser)

    def fetch(self, item: SourceItem, workspace: Path) -> Path:
        """
        Download item into workspace and return the audio file.

        Raises:
            FetchFailed: When an error is not worth retrying or the attempts
                         run out.
        """
        template = str(workspace / f"{item.id}.%(ext)s")
        message = ""

        for attempt in range(MAX_RETRIES):
            final = attempt == MAX_RETRIES - 1
            ydl_logger = CapturingYdlLogger(echo_errors=final)
            try:
                with YoutubeDL(self._build_options(template, ydl_logger)) as ydl:
                    if ydl.extract_info(item.locator, download=True) is None:
                        raise FetchFailed("yt-dlp returned no info", item=item)
                return self._find_downloaded_file(workspace, item)
            except Exception as e:
                message = str(e)
                captured = ydl_logger.last_error
                if captured and captured not in message:
                    message = f"{message} | {captured}"

                error_type = classify_error(message)
                delay = retry_delay(error_type, attempt, self.has_cookies)
                if delay is None:
                    raise FetchFailed(
                        f"yt-dlp error: {message}",
                        details={"source_id": item.id, "error_type": error_type.name},
                        item=item
                    ) from e
                if final:
                    break
                logger.debug(f"{item.id}: attempt {attempt + 1}/{MAX_RETRIES} failed "
                             f"({error_type.name}), retrying in {delay:.1f}s")
                self._sleep(delay)
                self._cleanup_partial_downloads(workspace, item.id)

        raise FetchFailed(
            f"yt-dlp error: {message}",
            details={"source_id": item.id, "attempts": MAX_RETRIES},
            item=item
        )

    def _find_downloaded_file(self, workspace: Path, item: SourceItem) -> Path:
        expected = workspace / f"{item.id}.{self._options.audio_format}"
        if expected.exists() and expected.stat().st_size > 0:
            return expected
        if expected.exists():
            raise FetchFailed(f"Downloaded file is empty: {expected.name}", item=item)
        raise FetchFailed(f"Downloaded file not found in {workspace}", item=item)

    def _cleanup_partial_downloads(self, workspace: Path, video_id: str) -> None:
        for path in workspace.glob(f"{video_id}.*"):
            if path.suffix in PARTIAL_SUFFIXES:
                try:
                    path.unlink()
                except OSError as e:
                    logger.debug(f"Could not remove partial download {path.name}: {e}")

    def _build_options(self, output_template: str, ydl_logger: Optional[CapturingYdlLogger] = None) -> dict[str, Any]:
        """
        yt-dlp options for one download, roughly:

            yt-dlp -x --audio-format mp3 --audio-quality 0 --no-playlist
                   --extractor-args youtube:player_client=tv [cookies]
        """
        extract_audio = {
            "key": "FFmpegExtractAudio",
            "preferredcodec": self._options.audio_format,
            "preferredquality": self._options.audio_quality,
        }
        options: dict[str, Any] = dict(
            format="bestaudio/best",
            outtmpl=output_template,
            noplaylist=True,
            postprocessors=[extract_audio],
            keepvideo=False,
            retries=3,
            fragment_retries=3,
            quiet=True,
            no_warnings=True,
            noprogress=True,
            encoding="UTF-8",
        )
        if self._options.player_client:
            options["extractor_args"] = {"youtube": {"player_client": [self._options.player_client]}}
        if ydl_logger is not None:
            options["logger"] = ydl_logger
        options.update(cookie_options(self._options))
        return options
