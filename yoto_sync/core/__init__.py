"""
Core module for yoto-sync.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - logger: Logging system with multiple outputs
    - associations: SQLite store of playlist → card links
      (import from yoto_sync.core.associations)
    - progress: Rich progress bars for transfers

Usage:
    from yoto_sync.core import (
        Config, load_config,
        setup_logging, get_logger,
        YotoSyncError, ConfigError
    )
"""

from yoto_sync.core.config import (
    Config,
    DownloadConfig,
    PublishConfig,
    StorageConfig,
    SyncConfig,
    YotoConfig,
    load_config,
)
from yoto_sync.core.exceptions import (
    AuthError,
    CardNotFoundError,
    CatalogError,
    CatalogNotFoundError,
    CommitFailed,
    ConfigError,
    DatabaseError,
    FetchFailed,
    PersistFailed,
    PlanningError,
    PublishFailed,
    PublishTimeout,
    UserCancelled,
    ValidationError,
    YotoApiError,
    YotoSyncError,
)
from yoto_sync.core.logger import (
    get_logger,
    log_sync_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "YotoConfig",
    "StorageConfig",
    "SyncConfig",
    "PublishConfig",
    "DownloadConfig",
    "load_config",
    # Exceptions
    "YotoSyncError",
    "ConfigError",
    "ValidationError",
    "AuthError",
    "DatabaseError",
    "CatalogError",
    "CatalogNotFoundError",
    "YotoApiError",
    "CardNotFoundError",
    "PlanningError",
    "FetchFailed",
    "PublishFailed",
    "PublishTimeout",
    "CommitFailed",
    "PersistFailed",
    "UserCancelled",
    # Logger
    "setup_logging",
    "get_logger",
    "log_sync_failure",
    "shutdown_logging",
]
