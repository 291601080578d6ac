"""Tracked show storage on SQLite.

This module provides:
- Tracked shows with their downloaded/needed episode lists
- The known-show catalog (per-season episode counts)
- The activity log shown to the user
- Show-level operations built on the tracking core (recalculate, toggle)

Usage:
    async with get_storage() as storage:
        show = await storage.create_show(TrackedShow(names=["Frieren"]))
        show = await storage.recalculate_show(show.id)
"""

import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel

from anitrack.tracking.models import CatalogEntry, TrackedShow
from anitrack.tracking.normalize import normalize_show_name
from anitrack.tracking.numbering import DEFAULT_EPISODES_PER_SEASON, reconcile

logger = structlog.get_logger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class StorageError(Exception):
    """Base exception for storage errors."""

    pass


class ShowNotFoundError(StorageError):
    """Raised when a tracked show does not exist."""

    def __init__(self, show_id: int):
        super().__init__(f"Show not found: {show_id}")
        self.show_id = show_id


class EpisodeNotTrackedError(StorageError):
    """Raised when an episode is neither needed nor downloaded."""

    def __init__(self, show_id: int, season: int, episode: int):
        super().__init__(
            f"Episode S{season}E{episode} not found in either needed or downloaded lists"
        )
        self.show_id = show_id
        self.season = season
        self.episode = episode


# =============================================================================
# Data Models
# =============================================================================


class LogLevel(str, Enum):
    """Activity log levels."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class ActivityLog(BaseModel):
    """Activity log entry."""

    id: int
    message: str
    level: LogLevel = LogLevel.INFO
    timestamp: datetime


# =============================================================================
# Abstract Storage Interface
# =============================================================================


class BaseStorage(ABC):
    """Abstract base class for storage backends."""

    def __init__(self, default_episodes: int = DEFAULT_EPISODES_PER_SEASON):
        """Initialize storage.

        Args:
            default_episodes: Episode count assumed for seasons without catalog data
        """
        self.default_episodes = default_episodes

    @abstractmethod
    async def connect(self) -> None:
        """Open database connection and initialize schema."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close database connection."""
        pass

    async def __aenter__(self) -> "BaseStorage":
        """Open database connection and apply migrations."""
        await self.connect()
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: object | None,
    ) -> None:
        """Close database connection."""
        await self.close()

    # -------------------------------------------------------------------------
    # Tracked shows
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_show(self, show: TrackedShow) -> TrackedShow:
        """Insert a tracked show and return it with its id."""
        pass

    @abstractmethod
    async def get_show(self, show_id: int) -> TrackedShow | None:
        """Get a tracked show by id."""
        pass

    @abstractmethod
    async def list_shows(self) -> list[TrackedShow]:
        """Get all tracked shows."""
        pass

    @abstractmethod
    async def update_show(self, show: TrackedShow) -> TrackedShow:
        """Persist all fields of an existing show."""
        pass

    @abstractmethod
    async def delete_show(self, show_id: int) -> bool:
        """Delete a tracked show."""
        pass

    # -------------------------------------------------------------------------
    # Known show catalog
    # -------------------------------------------------------------------------

    @abstractmethod
    async def upsert_known_show(self, entry: CatalogEntry) -> CatalogEntry:
        """Insert a catalog entry or replace the one with the same normalized name."""
        pass

    @abstractmethod
    async def get_known_shows(self) -> list[CatalogEntry]:
        """Get the full catalog in insertion order."""
        pass

    @abstractmethod
    async def delete_known_show(self, entry_id: int) -> bool:
        """Delete a catalog entry."""
        pass

    # -------------------------------------------------------------------------
    # Activity log
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_log(self, message: str, level: LogLevel | str = LogLevel.INFO) -> ActivityLog:
        """Append an activity log entry."""
        pass

    @abstractmethod
    async def get_logs(self, limit: int = 100) -> list[ActivityLog]:
        """Get the most recent log entries, newest first."""
        pass

    @abstractmethod
    async def clear_logs(self) -> int:
        """Delete all log entries and return how many were removed."""
        pass

    # -------------------------------------------------------------------------
    # Show-level operations
    # -------------------------------------------------------------------------

    async def _require_show(self, show_id: int) -> TrackedShow:
        show = await self.get_show(show_id)
        if show is None:
            raise ShowNotFoundError(show_id)
        return show

    async def recalculate_show(self, show_id: int) -> TrackedShow:
        """Recalculate the needed episodes of a show against the catalog.

        Raises:
            ShowNotFoundError: If the show does not exist.
        """
        show = await self._require_show(show_id)
        catalog = await self.get_known_shows()

        updated = reconcile(show, catalog, self.default_episodes)
        updated.last_checked = datetime.now(UTC)
        updated = await self.update_show(updated)

        await self.add_log(f"Recalculated needed episodes for: {show.display_name}")
        logger.info(
            "show_recalculated",
            show_id=show_id,
            needed=len(updated.needed),
            downloaded=len(updated.downloaded),
        )
        return updated

    async def toggle_episode(self, show_id: int, season: int, episode: int) -> TrackedShow:
        """Move an episode between the downloaded and needed lists.

        Raises:
            ShowNotFoundError: If the show does not exist.
            EpisodeNotTrackedError: If the episode is in neither list.
        """
        show = await self._require_show(show_id)
        key = (season, episode)

        if key in show.downloaded:
            downloaded = [ep for ep in show.downloaded if ep != key]
            needed = [*show.needed, key]
            action = f"Unmarked {show.display_name} S{season}E{episode} as needed"
        elif key in show.needed:
            needed = [ep for ep in show.needed if ep != key]
            downloaded = [*show.downloaded, key]
            action = f"Marked {show.display_name} S{season}E{episode} as downloaded"
        else:
            raise EpisodeNotTrackedError(show_id, season, episode)

        updated = await self.update_show(
            show.model_copy(update={"downloaded": downloaded, "needed": needed})
        )
        await self.add_log(action)
        return updated

    async def mark_downloaded(self, show_id: int, season: int, episode: int) -> TrackedShow:
        """Record an episode as downloaded and drop it from needed.

        Raises:
            ShowNotFoundError: If the show does not exist.
        """
        show = await self._require_show(show_id)
        key = (season, episode)

        downloaded = show.downloaded if key in show.downloaded else [*show.downloaded, key]
        needed = [ep for ep in show.needed if ep != key]
        return await self.update_show(
            show.model_copy(
                update={
                    "downloaded": downloaded,
                    "needed": needed,
                    "last_checked": datetime.now(UTC),
                }
            )
        )

    async def touch_show(self, show_id: int) -> None:
        """Update the last_checked timestamp of a show."""
        show = await self._require_show(show_id)
        show.last_checked = datetime.now(UTC)
        await self.update_show(show)


# =============================================================================
# SQLite Implementation
# =============================================================================


def _episodes_to_json(episodes: list[tuple[int, int]]) -> str:
    return json.dumps([list(ep) for ep in episodes])


def _episodes_from_json(value: str | None) -> list[tuple[int, int]]:
    if not value:
        return []
    return [(int(season), int(episode)) for season, episode in json.loads(value)]


class SQLiteStorage(BaseStorage):
    """SQLite-based storage for tracked shows, the catalog and activity logs."""

    def __init__(
        self,
        db_path: str | Path,
        default_episodes: int = DEFAULT_EPISODES_PER_SEASON,
    ):
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
            default_episodes: Episode count assumed for seasons without catalog data
        """
        super().__init__(default_episodes)
        self._db_path = Path(db_path)
        self._db: Any = None

    async def connect(self) -> None:
        """Open database connection and initialize schema."""
        import aiosqlite

        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row

        await self._apply_migrations()

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> Any:
        """Get active database connection."""
        if self._db is None:
            raise RuntimeError("Database not connected. Use 'async with' or call connect()")
        return self._db

    async def _apply_migrations(self) -> None:
        """Apply database migrations."""
        migrations = [
            # Migration 1: Migrations tracking table
            """
            CREATE TABLE IF NOT EXISTS _migrations (
                version INTEGER PRIMARY KEY,
                applied_at TEXT NOT NULL
            );
            """,
            # Migration 2: Tracked shows
            """
            CREATE TABLE IF NOT EXISTS shows (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                names TEXT NOT NULL,
                start_season INTEGER NOT NULL,
                start_episode INTEGER NOT NULL,
                end_season INTEGER NOT NULL,
                end_episode INTEGER NOT NULL,
                quality TEXT NOT NULL DEFAULT '',
                downloaded_episodes TEXT NOT NULL DEFAULT '[]',
                needed_episodes TEXT NOT NULL DEFAULT '[]',
                last_checked TEXT
            );
            """,
            # Migration 3: Known show catalog
            """
            CREATE TABLE IF NOT EXISTS known_shows (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                show_name TEXT NOT NULL,
                normalized_name TEXT UNIQUE NOT NULL,
                episodes_per_season TEXT NOT NULL DEFAULT '[]'
            );
            """,
            # Migration 4: Activity log
            """
            CREATE TABLE IF NOT EXISTS activity_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                message TEXT NOT NULL,
                level TEXT NOT NULL DEFAULT 'info',
                timestamp TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_activity_logs_timestamp ON activity_logs(timestamp);
            """,
        ]

        await self.db.executescript(migrations[0])
        cursor = await self.db.execute("SELECT version FROM _migrations")
        applied = {row["version"] for row in await cursor.fetchall()}

        for version, migration in enumerate(migrations[1:], start=2):
            if version in applied:
                continue
            await self.db.executescript(migration)
            await self.db.execute(
                "INSERT INTO _migrations (version, applied_at) VALUES (?, ?)",
                (version, datetime.now(UTC).isoformat()),
            )
            logger.debug("migration_applied", version=version)

        await self.db.commit()

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    def _row_to_show(self, row: Any) -> TrackedShow:
        return TrackedShow(
            id=row["id"],
            names=json.loads(row["names"]),
            start_season=row["start_season"],
            start_episode=row["start_episode"],
            end_season=row["end_season"],
            end_episode=row["end_episode"],
            quality=row["quality"],
            downloaded=_episodes_from_json(row["downloaded_episodes"]),
            needed=_episodes_from_json(row["needed_episodes"]),
            last_checked=(
                datetime.fromisoformat(row["last_checked"]) if row["last_checked"] else None
            ),
        )

    def _row_to_known_show(self, row: Any) -> CatalogEntry:
        return CatalogEntry(
            id=row["id"],
            name=row["show_name"],
            episodes_per_season=json.loads(row["episodes_per_season"]),
        )

    def _row_to_log(self, row: Any) -> ActivityLog:
        return ActivityLog(
            id=row["id"],
            message=row["message"],
            level=LogLevel(row["level"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )

    # -------------------------------------------------------------------------
    # Tracked shows
    # -------------------------------------------------------------------------

    async def create_show(self, show: TrackedShow) -> TrackedShow:
        """Insert a tracked show and return it with its id."""
        cursor = await self.db.execute(
            """
            INSERT INTO shows
                (names, start_season, start_episode, end_season, end_episode, quality,
                 downloaded_episodes, needed_episodes, last_checked)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                json.dumps(show.names),
                show.start_season,
                show.start_episode,
                show.end_season,
                show.end_episode,
                show.quality,
                _episodes_to_json(show.downloaded),
                _episodes_to_json(show.needed),
                show.last_checked.isoformat() if show.last_checked else None,
            ),
        )
        await self.db.commit()

        show_id = cursor.lastrowid
        if show_id is None:
            raise RuntimeError("Failed to get show ID after insert")

        await self.add_log(f"Added show: {show.display_name}")
        logger.info("show_created", show_id=show_id, name=show.display_name)
        return show.model_copy(update={"id": show_id})

    async def get_show(self, show_id: int) -> TrackedShow | None:
        """Get a tracked show by id."""
        cursor = await self.db.execute("SELECT * FROM shows WHERE id = ?", (show_id,))
        row = await cursor.fetchone()
        return self._row_to_show(row) if row else None

    async def list_shows(self) -> list[TrackedShow]:
        """Get all tracked shows."""
        cursor = await self.db.execute("SELECT * FROM shows ORDER BY id")
        rows = await cursor.fetchall()
        return [self._row_to_show(row) for row in rows]

    async def update_show(self, show: TrackedShow) -> TrackedShow:
        """Persist all fields of an existing show.

        Raises:
            ValueError: If the show has not been saved yet.
            ShowNotFoundError: If the show does not exist.
        """
        if show.id is None:
            raise ValueError("show has no id")

        cursor = await self.db.execute(
            """
            UPDATE shows SET
                names = ?, start_season = ?, start_episode = ?, end_season = ?,
                end_episode = ?, quality = ?, downloaded_episodes = ?,
                needed_episodes = ?, last_checked = ?
            WHERE id = ?
            """,
            (
                json.dumps(show.names),
                show.start_season,
                show.start_episode,
                show.end_season,
                show.end_episode,
                show.quality,
                _episodes_to_json(show.downloaded),
                _episodes_to_json(show.needed),
                show.last_checked.isoformat() if show.last_checked else None,
                show.id,
            ),
        )
        await self.db.commit()

        if cursor.rowcount == 0:
            raise ShowNotFoundError(show.id)
        return show

    async def delete_show(self, show_id: int) -> bool:
        """Delete a tracked show."""
        show = await self.get_show(show_id)
        if show is None:
            return False

        await self.db.execute("DELETE FROM shows WHERE id = ?", (show_id,))
        await self.db.commit()
        await self.add_log(f"Deleted show: {show.display_name}")
        return True

    # -------------------------------------------------------------------------
    # Known show catalog
    # -------------------------------------------------------------------------

    async def upsert_known_show(self, entry: CatalogEntry) -> CatalogEntry:
        """Insert a catalog entry or replace the one with the same normalized name."""
        normalized = normalize_show_name(entry.name)
        cursor = await self.db.execute(
            "SELECT 1 FROM known_shows WHERE normalized_name = ?", (normalized,)
        )
        exists = await cursor.fetchone() is not None

        await self.db.execute(
            """
            INSERT INTO known_shows (show_name, normalized_name, episodes_per_season)
            VALUES (?, ?, ?)
            ON CONFLICT(normalized_name) DO UPDATE SET
                show_name = excluded.show_name,
                episodes_per_season = excluded.episodes_per_season
            """,
            (entry.name, normalized, json.dumps(entry.episodes_per_season)),
        )
        await self.db.commit()

        cursor = await self.db.execute(
            "SELECT * FROM known_shows WHERE normalized_name = ?", (normalized,)
        )
        row = await cursor.fetchone()
        if row is None:
            raise RuntimeError(f"Failed to read back known show: {entry.name}")

        await self.add_log(f"{'Updated' if exists else 'Added'} known show: {entry.name}")
        return self._row_to_known_show(row)

    async def get_known_shows(self) -> list[CatalogEntry]:
        """Get the full catalog in insertion order."""
        cursor = await self.db.execute("SELECT * FROM known_shows ORDER BY id")
        rows = await cursor.fetchall()
        return [self._row_to_known_show(row) for row in rows]

    async def delete_known_show(self, entry_id: int) -> bool:
        """Delete a catalog entry."""
        cursor = await self.db.execute(
            "SELECT show_name FROM known_shows WHERE id = ?", (entry_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return False

        await self.db.execute("DELETE FROM known_shows WHERE id = ?", (entry_id,))
        await self.db.commit()
        await self.add_log(f"Deleted known show: {row['show_name']}")
        return True

    # -------------------------------------------------------------------------
    # Activity log
    # -------------------------------------------------------------------------

    async def add_log(self, message: str, level: LogLevel | str = LogLevel.INFO) -> ActivityLog:
        """Append an activity log entry."""
        level = LogLevel(level)
        now = datetime.now(UTC)

        cursor = await self.db.execute(
            "INSERT INTO activity_logs (message, level, timestamp) VALUES (?, ?, ?)",
            (message, level.value, now.isoformat()),
        )
        await self.db.commit()

        log_id = cursor.lastrowid
        if log_id is None:
            raise RuntimeError("Failed to get log ID after insert")
        return ActivityLog(id=log_id, message=message, level=level, timestamp=now)

    async def get_logs(self, limit: int = 100) -> list[ActivityLog]:
        """Get the most recent log entries, newest first."""
        cursor = await self.db.execute(
            "SELECT * FROM activity_logs ORDER BY id DESC LIMIT ?", (limit,)
        )
        rows = await cursor.fetchall()
        return [self._row_to_log(row) for row in rows]

    async def clear_logs(self) -> int:
        """Delete all log entries and return how many were removed."""
        cursor = await self.db.execute("DELETE FROM activity_logs")
        await self.db.commit()
        return cursor.rowcount


# =============================================================================
# Factory
# =============================================================================


@asynccontextmanager
async def get_storage(db_path: str | Path | None = None) -> AsyncIterator[BaseStorage]:
    """Get a connected storage instance as a context manager.

    Args:
        db_path: SQLite database path (default: settings.database_path)

    Yields:
        Connected storage instance
    """
    from anitrack.config import settings

    storage = SQLiteStorage(
        db_path or settings.database_path,
        default_episodes=settings.default_episodes_per_season,
    )
    async with storage:
        yield storage
