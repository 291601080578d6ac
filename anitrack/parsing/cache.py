"""TTL cache for parsed torrent titles.

Entries live in memory and can be persisted to a JSON file so parse
results survive restarts. Expired entries are dropped on load and on read.
"""

import json
import time
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_TTL = 7 * 24 * 60 * 60  # 7 days


class TTLCache:
    """String-keyed cache of JSON-serializable values with expiry."""

    def __init__(self, ttl: float = DEFAULT_TTL, path: str | Path | None = None):
        """Initialize the cache.

        Args:
            ttl: Entry lifetime in seconds.
            path: Optional JSON file for persistence.
        """
        self.ttl = ttl
        self.path = Path(path) if path else None
        self._entries: dict[str, dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, entry: dict[str, Any], now: float) -> bool:
        return now - entry["timestamp"] > self.ttl

    def load(self) -> None:
        """Load entries from disk, dropping expired ones.

        A missing or unreadable file leaves the cache empty.
        """
        if self.path is None:
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            self._entries = {}
            return
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("parse_cache_unreadable", path=str(self.path), error=str(e))
            self._entries = {}
            return

        if not isinstance(data, dict):
            logger.warning("parse_cache_unreadable", path=str(self.path), error="not an object")
            self._entries = {}
            return

        now = time.time()
        entries = {
            key: entry
            for key, entry in data.items()
            if isinstance(entry, dict) and "timestamp" in entry and "data" in entry
        }
        self._entries = {k: v for k, v in entries.items() if not self._is_expired(v, now)}

        expired = len(data) - len(self._entries)
        logger.debug("parse_cache_loaded", entries=len(self._entries), expired=expired)
        if expired:
            self.save()

    def save(self) -> None:
        """Write entries to disk, if a path is configured."""
        if self.path is None:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._entries, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("parse_cache_save_failed", path=str(self.path), error=str(e))

    def get(self, key: str) -> Any | None:
        """Get a cached value, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self._is_expired(entry, time.time()):
            del self._entries[key]
            self.save()
            return None

        return entry["data"]

    def set(self, key: str, data: Any) -> None:
        """Store a value and persist the cache."""
        self._entries[key] = {"timestamp": time.time(), "data": data}
        self.save()

    def clear(self) -> None:
        """Remove all entries."""
        self._entries = {}
        self.save()
