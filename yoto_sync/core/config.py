"""
Configuration management for yoto-sync.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Yoto API and web endpoints
    - Storage directory (token, association database, logs)
    - Matching threshold and batch parallelism for sync runs
    - Transcode polling budget
    - yt-dlp download options (audio format, cookies)

Every section is optional. Without a config file the defaults below are used.

Configuration File Location:
    1. The path passed with --config (must exist)
    2. config.yaml in the current working directory
    3. ~/.config/yoto/config.yaml

Example config.yaml:
    storage:
      directory: "~/.config/yoto"

    sync:
      match_threshold: 0.4
      threads: 1

    publish:
      poll_interval: 5
      max_poll_attempts: 60

    download:
      cookies_from_browser: "chrome"
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from yoto_sync.core.exceptions import ConfigError


CONFIG_FILENAME = "config.yaml"
DEFAULT_STORAGE_DIRECTORY = "~/.config/yoto"

DEFAULT_API_BASE_URL = "https://api.yotoplay.com"
DEFAULT_WEB_BASE_URL = "https://my.yotoplay.com"

SUPPORTED_AUDIO_FORMATS = ("mp3", "m4a", "opus", "ogg", "wav", "flac")


@dataclass(frozen=True)
class YotoConfig:
    """
    Yoto service endpoints.

    Attributes:
        api_base_url: Base URL of the Yoto REST API (no trailing slash).
        web_base_url: Base URL of the web app, used for the card edit link.
        timeout: Per-request timeout in seconds.
    """
    api_base_url: str = DEFAULT_API_BASE_URL
    web_base_url: str = DEFAULT_WEB_BASE_URL
    timeout: float = 30.0


@dataclass(frozen=True)
class StorageConfig:
    """
    Local storage locations.

    Attributes:
        directory: Directory holding auth.json, associations.db and logs/.
        workspace_directory: Parent directory for per-run temporary
                             workspaces. None means the system temp dir.
    """
    directory: Path
    workspace_directory: Path | None = None

    @property
    def auth_file(self) -> Path:
        return self.directory / "auth.json"

    @property
    def database_file(self) -> Path:
        return self.directory / "associations.db"

    @property
    def logs_directory(self) -> Path:
        return self.directory / "logs"


@dataclass(frozen=True)
class SyncConfig:
    """
    Reconciliation behavior.

    Attributes:
        match_threshold: Maximum fuzzy distance (exclusive) for two titles
                         to be considered the same item. Lower = stricter.
        threads: Number of parallel downloads/uploads. 1 keeps the
                 sequential "[N/M]" progress in playlist order.
        open_browser: Open the card editor after a successful sync.
    """
    match_threshold: float = 0.4
    threads: int = 1
    open_browser: bool = True


@dataclass(frozen=True)
class PublishConfig:
    """
    Transcode polling budget.

    Attributes:
        poll_interval: Seconds between transcode status checks.
        max_poll_attempts: Checks before giving up with PublishTimeout.
    """
    poll_interval: float = 5.0
    max_poll_attempts: int = 60


@dataclass(frozen=True)
class DownloadConfig:
    """
    yt-dlp download options.

    Attributes:
        audio_format: Target audio format for extraction.
        audio_quality: yt-dlp audio quality ("0" = best VBR).
        cookie_file: Optional cookies.txt exported from the browser.
        cookies_from_browser: Optional browser name to read cookies from
                              (e.g. "chrome"). Ignored if cookie_file is set.
        player_client: YouTube player client passed as extractor argument.
    """
    audio_format: str = "mp3"
    audio_quality: str = "0"
    cookie_file: Path | None = None
    cookies_from_browser: str | None = None
    player_client: str | None = "tv"


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"Associations: {config.storage.database_file}")
        print(f"Threshold: {config.sync.match_threshold}")
    """
    yoto: YotoConfig
    storage: StorageConfig
    sync: SyncConfig
    publish: PublishConfig
    download: DownloadConfig


def default_config_paths() -> list[Path]:
    """Return the implicit config locations, in lookup order."""
    return [
        Path.cwd() / CONFIG_FILENAME,
        Path(DEFAULT_STORAGE_DIRECTORY).expanduser() / CONFIG_FILENAME,
    ]


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration.

    Args:
        config_path: Optional explicit path to a config file. When given,
                     the file must exist. When None, the default locations
                     are searched and defaults are used if none exists.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the file cannot be read, has invalid YAML syntax,
                     is not a mapping, or contains invalid values.
    """
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(
                f"Configuration file not found: {config_path}",
                details={"file_path": str(config_path)}
            )
        raw_config = _read_yaml(config_path)
    else:
        raw_config = {}
        for candidate in default_config_paths():
            if candidate.exists():
                raw_config = _read_yaml(candidate)
                break

    return parse_config(raw_config)


def parse_config(raw_config: dict[str, Any]) -> Config:
    """
    Build a Config from an already-parsed mapping.

    Args:
        raw_config: Mapping as produced by yaml.safe_load.

    Returns:
        Validated Config with defaults applied.

    Raises:
        ConfigError: If a section is not a mapping or a value is invalid.
    """
    for section in ("yoto", "storage", "sync", "publish", "download"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )

    return Config(
        yoto=_parse_yoto_config(raw_config.get("yoto") or {}),
        storage=_parse_storage_config(raw_config.get("storage") or {}),
        sync=_parse_sync_config(raw_config.get("sync") or {}),
        publish=_parse_publish_config(raw_config.get("publish") or {}),
        download=_parse_download_config(raw_config.get("download") or {}),
    )


def _read_yaml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file is a valid "all defaults" config
    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _get_string(section: dict[str, Any], name: str, field: str, default: str | None) -> str | None:
    value = section.get(name)
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field}' must be a non-empty string",
            details={"field": field}
        )
    return value.strip()


def _get_positive_number(section: dict[str, Any], name: str, field: str, default: float) -> float:
    value = section.get(name)
    if value is None:
        return default
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(
            f"'{field}' must be a positive number",
            details={"field": field, "value": value}
        )
    return float(value)


def _get_positive_int(section: dict[str, Any], name: str, field: str, default: int) -> int:
    value = section.get(name)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(
            f"'{field}' must be a positive integer",
            details={"field": field, "value": value}
        )
    return value


def _expand_path(raw: str) -> Path:
    return Path(raw).expanduser().resolve()


def _parse_yoto_config(section: dict[str, Any]) -> YotoConfig:
    api_base_url = _get_string(section, "api_base_url", "yoto.api_base_url", DEFAULT_API_BASE_URL)
    web_base_url = _get_string(section, "web_base_url", "yoto.web_base_url", DEFAULT_WEB_BASE_URL)
    timeout = _get_positive_number(section, "timeout", "yoto.timeout", 30.0)

    return YotoConfig(
        api_base_url=api_base_url.rstrip("/"),
        web_base_url=web_base_url.rstrip("/"),
        timeout=timeout
    )


def _parse_storage_config(section: dict[str, Any]) -> StorageConfig:
    """
    Parse the storage section.

    Expands ~ and makes paths absolute. Does NOT create the directories
    (that happens when the token or database is first written).
    """
    directory = _get_string(section, "directory", "storage.directory", DEFAULT_STORAGE_DIRECTORY)
    workspace = _get_string(section, "workspace_directory", "storage.workspace_directory", None)

    return StorageConfig(
        directory=_expand_path(directory),
        workspace_directory=_expand_path(workspace) if workspace else None
    )


def _parse_sync_config(section: dict[str, Any]) -> SyncConfig:
    threshold = _get_positive_number(section, "match_threshold", "sync.match_threshold", 0.4)
    if threshold > 1:
        raise ConfigError(
            "'sync.match_threshold' must be a number in (0, 1]",
            details={"field": "sync.match_threshold", "value": threshold}
        )

    threads = _get_positive_int(section, "threads", "sync.threads", 1)

    open_browser = section.get("open_browser", True)
    if not isinstance(open_browser, bool):
        raise ConfigError(
            "'sync.open_browser' must be true or false",
            details={"field": "sync.open_browser", "value": open_browser}
        )

    return SyncConfig(
        match_threshold=threshold,
        threads=threads,
        open_browser=open_browser
    )


def _parse_publish_config(section: dict[str, Any]) -> PublishConfig:
    return PublishConfig(
        poll_interval=_get_positive_number(section, "poll_interval", "publish.poll_interval", 5.0),
        max_poll_attempts=_get_positive_int(section, "max_poll_attempts", "publish.max_poll_attempts", 60)
    )


def _parse_download_config(section: dict[str, Any]) -> DownloadConfig:
    """
    Parse the download section.

    Raises:
        ConfigError: If the audio format is unsupported, or if cookie_file
                     is given but does not exist.
    """
    audio_format = _get_string(section, "audio_format", "download.audio_format", "mp3").lower()
    if audio_format not in SUPPORTED_AUDIO_FORMATS:
        raise ConfigError(
            f"'download.audio_format' must be one of: {', '.join(SUPPORTED_AUDIO_FORMATS)}",
            details={"field": "download.audio_format", "value": audio_format}
        )

    # yt-dlp accepts "0".."10" or a bitrate like "192K"; YAML may give an int
    raw_quality = section.get("audio_quality", "0")
    if isinstance(raw_quality, bool) or not isinstance(raw_quality, (str, int)):
        raise ConfigError(
            "'download.audio_quality' must be a string or integer",
            details={"field": "download.audio_quality"}
        )
    audio_quality = str(raw_quality)

    cookie_file = None
    raw_cookie = _get_string(section, "cookie_file", "download.cookie_file", None)
    if raw_cookie is not None:
        cookie_path = _expand_path(raw_cookie)
        if not cookie_path.exists():
            raise ConfigError(
                f"Cookie file not found: {cookie_path}",
                details={"field": "download.cookie_file", "path": str(cookie_path)}
            )
        cookie_file = cookie_path

    cookies_from_browser = _get_string(
        section, "cookies_from_browser", "download.cookies_from_browser", None
    )

    if "player_client" in section and section["player_client"] is None:
        player_client = None
    else:
        player_client = _get_string(section, "player_client", "download.player_client", "tv")

    return DownloadConfig(
        audio_format=audio_format,
        audio_quality=audio_quality,
        cookie_file=cookie_file,
        cookies_from_browser=cookies_from_browser,
        player_client=player_client
    )
