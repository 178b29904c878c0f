"""
Yoto integration for yoto-sync.

Components:
    - auth: Bearer token storage (yoto login / logout / status)
    - YotoClient: REST API client for cards and media
    - YotoPublisher: Upload + transcode of audio files
    - models: Payload conversion

Usage:
    from yoto_sync.yoto import YotoClient, YotoPublisher, require_token
"""

from yoto_sync.yoto.auth import (
    TokenStatus,
    format_time_remaining,
    login,
    logout,
    require_token,
    status,
)
from yoto_sync.yoto.client import YotoClient
from yoto_sync.yoto.publisher import YotoPublisher

__all__ = [
    "TokenStatus",
    "format_time_remaining",
    "login",
    "logout",
    "require_token",
    "status",
    "YotoClient",
    "YotoPublisher",
]
