"""
Yoto token storage.

yoto-sync does not perform an OAuth flow. The user copies the bearer token
the Yoto web app sends (DevTools → Network → any api.yotoplay.com request →
Authorization header) and stores it with `yoto login`.

The token is a JWT; only its `exp` claim is read (the signature is not
verified, the API does that). It is stored in auth.json in the storage
directory:

    {
        "access_token": "eyJhbGciOi...",
        "expires_at": 1767225600
    }

Usage:
    expires_in = login(pasted_token, config.storage.auth_file)
    token = require_token(config.storage.auth_file)
"""

import base64
import binascii
import json
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from yoto_sync.core.exceptions import AuthError
from yoto_sync.core.logger import get_logger

logger = get_logger(__name__)


LOGIN_INSTRUCTIONS = """\
To authenticate with Yoto:

1. Open https://my.yotoplay.com in your browser
2. Log in if needed
3. Open DevTools (F12) → Network tab
4. Refresh the page
5. Click any request to api.yotoplay.com
6. Copy the Authorization header value (starts with "Bearer ")
"""

NOT_LOGGED_IN = "not_logged_in"
EXPIRED = "expired"

_BEARER_PREFIX = re.compile(r"^Bearer\s+", re.IGNORECASE)


@dataclass(frozen=True)
class StoredToken:
    access_token: str
    expires_at: int


@dataclass(frozen=True)
class TokenStatus:
    """
    Result of status().

    Attributes:
        valid: True if a non-expired token is stored.
        reason: NOT_LOGGED_IN or EXPIRED when not valid.
        expires_at: Expiry as a Unix timestamp, when a token is stored.
        expires_in: Human-readable remaining time, when valid.
    """
    valid: bool
    reason: str | None = None
    expires_at: int | None = None
    expires_in: str | None = None


def format_time_remaining(seconds: int) -> str:
    """
    Format a duration for display.

    Examples:
        45    -> "45 seconds"
        60    -> "1 minute"
        7200  -> "2 hours"
        5460  -> "1 hour, 31 minutes"
    """
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds} seconds"

    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} minute{'' if minutes == 1 else 's'}"

    hours, remaining_minutes = divmod(minutes, 60)
    hours_text = f"{hours} hour{'' if hours == 1 else 's'}"
    if remaining_minutes == 0:
        return hours_text
    return f"{hours_text}, {remaining_minutes} minute{'' if remaining_minutes == 1 else 's'}"


def parse_token(token: str) -> StoredToken:
    """
    Strip an optional "Bearer " prefix and read the JWT expiry.

    Raises:
        AuthError: If the token is not a JWT or has no exp claim.
    """
    access_token = _BEARER_PREFIX.sub("", (token or "").strip()).strip()

    parts = access_token.split(".")
    if len(parts) != 3:
        raise AuthError("Token is not a valid JWT")

    payload_segment = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(payload_segment))
    except (binascii.Error, ValueError) as e:
        raise AuthError("Token is not a valid JWT", details={"original_error": str(e)}) from e

    expires_at = payload.get("exp") if isinstance(payload, dict) else None
    if not isinstance(expires_at, (int, float)) or isinstance(expires_at, bool):
        raise AuthError("Token missing expiration")

    return StoredToken(access_token=access_token, expires_at=int(expires_at))


def read_token(auth_file: Path) -> StoredToken | None:
    """
    Read auth.json.

    Returns:
        The stored token, or None if there is no auth file.

    Raises:
        AuthError: If the file exists but cannot be parsed.
    """
    if not auth_file.exists():
        return None

    try:
        with open(auth_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        return StoredToken(access_token=data["access_token"], expires_at=int(data["expires_at"]))
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise AuthError(
            f"Cannot read {auth_file}. Run: yoto login",
            details={"path": str(auth_file), "original_error": str(e)}
        ) from e


def login(token: str, auth_file: Path, now: Callable[[], float] = time.time) -> str:
    """
    Validate and store a token.

    Returns:
        Time until the token expires, formatted for display.

    Raises:
        AuthError: If the token is malformed or already expired.
    """
    stored = parse_token(token)
    current = int(now())
    if stored.expires_at <= current:
        raise AuthError("Token is already expired", expired=True)

    auth_file.parent.mkdir(parents=True, exist_ok=True)
    with open(auth_file, "w", encoding="utf-8") as f:
        json.dump({"access_token": stored.access_token, "expires_at": stored.expires_at}, f, indent=4)
    os.chmod(auth_file, 0o600)

    logger.debug(f"Token stored in {auth_file}")
    return format_time_remaining(stored.expires_at - current)


def logout(auth_file: Path) -> bool:
    """Delete the stored token. Returns False if there was none."""
    if not auth_file.exists():
        return False
    auth_file.unlink()
    return True


def status(auth_file: Path, now: Callable[[], float] = time.time) -> TokenStatus:
    stored = read_token(auth_file)
    if stored is None:
        return TokenStatus(valid=False, reason=NOT_LOGGED_IN)

    current = int(now())
    if stored.expires_at <= current:
        return TokenStatus(valid=False, reason=EXPIRED, expires_at=stored.expires_at)

    return TokenStatus(
        valid=True,
        expires_at=stored.expires_at,
        expires_in=format_time_remaining(stored.expires_at - current)
    )


def require_token(auth_file: Path, now: Callable[[], float] = time.time) -> str:
    """
    Return the stored access token.

    Raises:
        AuthError: If not logged in, or the token has expired.
    """
    stored = read_token(auth_file)
    if stored is None:
        raise AuthError("Not logged in. Please run: yoto login")
    if stored.expires_at <= int(now()):
        raise AuthError("Token expired. Please run: yoto login", expired=True)
    return stored.access_token
