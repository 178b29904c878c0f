"""
Exception classes for yoto-sync.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message and an optional details
dictionary, so the CLI can print something actionable while the full log
keeps the context.

Exception Hierarchy:
    YotoSyncError (base)
        ConfigError - Configuration file issues
        ValidationError - Malformed playlist reference or user input
        AuthError - Missing or expired Yoto token
        DatabaseError - Association store issues
        CatalogError - YouTube playlist could not be read
            CatalogNotFoundError - Playlist does not exist or is private
        YotoApiError - Yoto API returned an error response
            CardNotFoundError - Card does not exist
        PlanningError - Reads needed to build the sync plan failed
        FetchFailed - A source item could not be downloaded
        PublishFailed - A payload could not be uploaded/transcoded
            PublishTimeout - Transcoding did not finish in time
        CommitFailed - Writing the new chapter list failed
        PersistFailed - Saving the playlist association failed
        UserCancelled - The operator declined (not a failure)
"""

from typing import Any


class YotoSyncError(Exception):
    """
    Base exception for all yoto-sync errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (IDs, URLs,
                 status codes, the wrapped error).

    Example:
        try:
            orchestrator.run(url)
        except YotoSyncError as e:
            logger.error(f"Sync failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description shown to the user.
            details: Optional dictionary containing additional context.
                     Common keys include:
                     - 'source_id': YouTube video or playlist ID
                     - 'card_id': Yoto card ID
                     - 'original_error': The underlying exception message
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(YotoSyncError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Example:
        raise ConfigError(
            "'sync.match_threshold' must be a number in (0, 1]",
            details={'field': 'sync.match_threshold', 'value': 3}
        )
    """
    pass


class ValidationError(YotoSyncError):
    """
    Raised for malformed input that no retry can fix.

    Surfaced immediately, before any network call when possible.

    Example:
        raise ValidationError(
            "Could not extract playlist ID from URL",
            details={'reference': 'https://youtube.com/watch?v=abc'}
        )
    """
    pass


class AuthError(YotoSyncError):
    """
    Raised when no usable Yoto token is available.

    Attributes:
        expired: True if a token exists but has expired.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        expired: bool = False
    ) -> None:
        super().__init__(message, details)
        self.expired = expired


class DatabaseError(YotoSyncError):
    """
    Raised when the association store cannot be opened, read or written.

    Example:
        raise DatabaseError(
            "Database version mismatch: expected 1, got 3",
            details={'path': '/home/me/.config/yoto/associations.db'}
        )
    """
    pass


class CatalogError(YotoSyncError):
    """
    Raised when the YouTube playlist cannot be read.

    Transient failures (network, rate limiting) are reported here as well;
    the sync core does not retry them.
    """
    pass


class CatalogNotFoundError(CatalogError):
    """Raised when the playlist does not exist, is private, or is empty."""
    pass


class YotoApiError(YotoSyncError):
    """
    Raised when the Yoto API answers with a non-success status.

    Attributes:
        status_code: HTTP status code, or None for transport failures.

    Example:
        raise YotoApiError(
            "Yoto API error (401): Unauthorized",
            details={'path': '/content/mine'},
            status_code=401
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        status_code: int | None = None
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code


class CardNotFoundError(YotoApiError):
    """Raised when a card ID does not resolve to a card."""
    pass


class PlanningError(YotoSyncError):
    """
    Raised when a read needed to build the sync plan fails.

    Wraps CatalogError and YotoApiError raised during PLANNING. Nothing has
    been written when this is raised.
    """
    pass


class FetchFailed(YotoSyncError):
    """
    Raised when a source item could not be downloaded.

    Aborts the whole fetch batch; nothing is uploaded or committed.

    Attributes:
        item: The SourceItem that failed, when known.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        item: Any = None
    ) -> None:
        super().__init__(message, details)
        self.item = item


class PublishFailed(YotoSyncError):
    """
    Raised when a downloaded payload could not be uploaded or transcoded.

    Aborts the publish batch before any commit.

    Attributes:
        item: The SourceItem whose payload failed, when known.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        item: Any = None
    ) -> None:
        super().__init__(message, details)
        self.item = item


class PublishTimeout(PublishFailed):
    """Raised when transcoding did not complete within the polling budget."""
    pass


class CommitFailed(YotoSyncError):
    """
    Raised when the new chapter list could not be written to the card.

    The playlist association is NOT saved when this is raised.
    """
    pass


class PersistFailed(YotoSyncError):
    """
    Raised by the association store when the link could not be saved.

    The orchestrator logs this and still reports success, because the card
    itself was already updated.
    """
    pass


class UserCancelled(YotoSyncError):
    """
    Raised when the operator declines a confirmation.

    This is not a failure: no changes were made and the CLI exits with 0.
    """

    def __init__(self, message: str = "Sync cancelled", details: dict | None = None) -> None:
        super().__init__(message, details)
