"""Storage module for tracked shows, the known-show catalog and activity logs."""

from anitrack.storage.storage import (
    ActivityLog,
    BaseStorage,
    EpisodeNotTrackedError,
    LogLevel,
    ShowNotFoundError,
    SQLiteStorage,
    StorageError,
    get_storage,
)

__all__ = [
    # Storage backends
    "BaseStorage",
    "SQLiteStorage",
    "get_storage",
    # Models
    "ActivityLog",
    "LogLevel",
    # Errors
    "StorageError",
    "ShowNotFoundError",
    "EpisodeNotTrackedError",
]
