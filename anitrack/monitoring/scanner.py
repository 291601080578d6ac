"""Episode scanner.

Searches Nyaa for every needed episode of the tracked shows, parses each
result title and marks the episode downloaded on the first match.

Key features:
- Three query shapes per alternate show name (SxEy, "Season x Episode y", bare number)
- Matching through the tracking core (batch releases, absolute numbering)
- Sequential requests with delays to respect Nyaa rate limits
- Scan state held in a ScanJob owned by one Scanner instance

Usage:
    async with get_storage() as storage:
        scanner = Scanner(storage, TitleParser())
        shows = await scanner.start()
        await scanner.run(shows)
"""

import asyncio
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog

from anitrack.config import settings
from anitrack.parsing.title_parser import TitleParser
from anitrack.search.nyaa import NyaaClient, NyaaError, NyaaResult
from anitrack.storage.storage import BaseStorage, LogLevel, ShowNotFoundError
from anitrack.tracking.matcher import explain_match
from anitrack.tracking.models import CatalogEntry, TrackedShow

logger = structlog.get_logger(__name__)

SearchFunc = Callable[[str], Awaitable[list[NyaaResult]]]


# =============================================================================
# Exceptions
# =============================================================================


class ScanError(Exception):
    """Base exception for scan errors."""

    pass


class ScanInProgressError(ScanError):
    """Raised when starting a scan while another one is running."""

    pass


class ScanNotRunningError(ScanError):
    """Raised when cancelling while no scan is running."""

    pass


class NothingToScanError(ScanError):
    """Raised when there are no shows to scan."""

    pass


# =============================================================================
# Scan State
# =============================================================================


@dataclass
class FoundMagnet:
    """A matched torrent for a needed episode."""

    show_id: int
    show_name: str
    season: int
    episode: int
    magnet: str
    torrent_title: str


@dataclass
class ScanJob:
    """Progress of the scan owned by a Scanner."""

    is_running: bool = False
    show_id: int | None = None
    current: int = 0
    total: int = 0
    current_show: str | None = None
    cancel_requested: bool = False
    started_at: datetime | None = None

    def snapshot(self) -> dict[str, Any]:
        """Status payload for callers polling the scan."""
        return {
            "is_running": self.is_running,
            "show_id": self.show_id,
            "progress": {
                "current": self.current,
                "total": self.total,
                "current_show": self.current_show,
            },
        }


# =============================================================================
# Query Building
# =============================================================================


def build_queries(name: str, season: int, episode: int, quality: str) -> list[str]:
    """Build the search queries for one episode under one show name.

    Season markers are omitted for season 1, since most first seasons are
    released without one.
    """
    season_short = f"S{season} " if season > 1 else ""
    season_long = f"Season {season} " if season > 1 else ""
    queries = [
        f"{name} {season_short}E{episode} {quality}",
        f"{name} {season_long}Episode {episode} {quality}",
        f"{name} {episode} {quality}",
    ]
    return [re.sub(r"\s+", " ", q).strip() for q in queries]


# =============================================================================
# Scanner
# =============================================================================


class Scanner:
    """Scans Nyaa for the needed episodes of tracked shows."""

    def __init__(
        self,
        storage: BaseStorage,
        parser: TitleParser,
        search: SearchFunc | None = None,
        query_error_delay: float | None = None,
        episode_delay: float | None = None,
    ):
        """Initialize the scanner.

        Args:
            storage: Connected storage backend
            parser: Torrent title parser
            search: Search function (default: a NyaaClient opened per run)
            query_error_delay: Seconds to wait after a failed query
            episode_delay: Seconds to wait between episodes
        """
        self._storage = storage
        self._parser = parser
        self._search = search
        self._query_error_delay = (
            settings.query_error_delay if query_error_delay is None else query_error_delay
        )
        self._episode_delay = settings.episode_delay if episode_delay is None else episode_delay
        self.job = ScanJob()
        self.found_magnets: list[FoundMagnet] = []
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self.job.is_running

    def status(self) -> dict[str, Any]:
        """Current scan status."""
        return self.job.snapshot()

    async def start(self, show_id: int | None = None) -> list[TrackedShow]:
        """Validate and initialize a scan.

        Args:
            show_id: Scan only this show (default: all shows)

        Returns:
            Shows to pass to run()

        Raises:
            ScanInProgressError: If a scan is already running.
            ShowNotFoundError: If show_id does not exist.
            NothingToScanError: If there are no shows.
        """
        if self.job.is_running:
            raise ScanInProgressError("A scan is already in progress")

        if show_id is not None:
            show = await self._storage.get_show(show_id)
            if show is None:
                raise ShowNotFoundError(show_id)
            shows = [show]
        else:
            shows = await self._storage.list_shows()

        if not shows:
            raise NothingToScanError("No shows to scan")

        self.job = ScanJob(
            is_running=True,
            show_id=show_id,
            total=sum(len(show.needed) for show in shows),
            current_show=shows[0].display_name,
            started_at=datetime.now(UTC),
        )
        self.found_magnets = []

        message = (
            f"Started scanning for show: {shows[0].display_name}"
            if show_id is not None
            else f"Started scanning all shows ({len(shows)} shows)"
        )
        await self._storage.add_log(message)
        logger.info("scan_started", show_id=show_id, shows=len(shows), episodes=self.job.total)
        return shows

    def start_background(self, shows: list[TrackedShow]) -> asyncio.Task:
        """Run a started scan as a background task."""
        self._task = asyncio.create_task(self.run(shows))
        return self._task

    async def cancel(self) -> None:
        """Request cancellation of the running scan.

        Raises:
            ScanNotRunningError: If no scan is running.
        """
        if not self.job.is_running:
            raise ScanNotRunningError("No scan is currently in progress")

        self.job.cancel_requested = True
        await self._storage.add_log("Scan cancelled by user")
        logger.info("scan_cancel_requested")

    async def scan(self, show_id: int | None = None) -> list[FoundMagnet]:
        """Start and run a scan to completion."""
        shows = await self.start(show_id)
        return await self.run(shows)

    async def run(self, shows: list[TrackedShow]) -> list[FoundMagnet]:
        """Run a started scan over the given shows.

        Returns:
            Torrents matched during this run
        """
        processed = 0
        try:
            catalog = await self._storage.get_known_shows()

            if self._search is not None:
                processed = await self._scan_shows(shows, catalog, self._search)
            else:
                async with NyaaClient(
                    base_url=settings.nyaa_base_url, timeout=settings.request_timeout
                ) as client:

                    async def search(query: str) -> list[NyaaResult]:
                        return await client.search(query, category=settings.nyaa_category)

                    processed = await self._scan_shows(shows, catalog, search)

            await self._storage.add_log(f"Scan completed. Processed {processed} episodes.")
            logger.info("scan_completed", processed=processed, found=len(self.found_magnets))

        except Exception as e:
            logger.exception("scan_failed", error=str(e))
            await self._storage.add_log(f"Scan error: {e}", LogLevel.ERROR)

        finally:
            self.job = ScanJob()

        return self.found_magnets

    async def _scan_shows(
        self,
        shows: list[TrackedShow],
        catalog: list[CatalogEntry],
        search: SearchFunc,
    ) -> int:
        """Scan every needed episode of each show, returning the processed count."""
        processed = 0

        for show in shows:
            if self.job.cancel_requested:
                break

            self.job.current_show = show.display_name
            await self._storage.add_log(f"Scanning show: {show.display_name}")

            for season, episode in show.needed:
                if self.job.cancel_requested:
                    break

                self.job.current = processed
                await self._scan_episode(show, season, episode, catalog, search)
                processed += 1

                await asyncio.sleep(self._episode_delay)

            if show.id is not None:
                await self._storage.touch_show(show.id)

        return processed

    async def _scan_episode(
        self,
        show: TrackedShow,
        season: int,
        episode: int,
        catalog: list[CatalogEntry],
        search: SearchFunc,
    ) -> FoundMagnet | None:
        """Search every name and query shape until a result matches."""
        label = f"{show.display_name} S{season}E{episode}"
        await self._storage.add_log(f"Searching for {label}")

        for name in show.names:
            for query in build_queries(name, season, episode, show.quality):
                try:
                    results = await search(query)
                except NyaaError as e:
                    logger.warning("scan_query_failed", query=query, error=str(e))
                    await self._storage.add_log(
                        f"Error searching for {query}: {e}", LogLevel.ERROR
                    )
                    await asyncio.sleep(self._query_error_delay)
                    continue

                found = await self._first_match(show, season, episode, catalog, results)
                if found is not None:
                    await self._storage.add_log(
                        f"Found match for {label}: {found.torrent_title}", LogLevel.SUCCESS
                    )
                    return found

        await self._storage.add_log(f"No match found for {label}", LogLevel.WARNING)
        return None

    async def _first_match(
        self,
        show: TrackedShow,
        season: int,
        episode: int,
        catalog: list[CatalogEntry],
        results: list[NyaaResult],
    ) -> FoundMagnet | None:
        """Return the first result that matches, recording it as downloaded."""
        for result in results:
            outcome = await self._parser.parse(result.title)
            if outcome.candidate is None:
                continue

            decision = explain_match(
                outcome.candidate,
                show,
                season,
                episode,
                catalog,
                settings.default_episodes_per_season,
            )
            logger.debug(
                "scan_candidate_evaluated",
                title=result.title,
                matched=decision.matched,
                reason=decision.reason,
            )
            if not decision:
                continue

            found = FoundMagnet(
                show_id=show.id or 0,
                show_name=show.display_name,
                season=season,
                episode=episode,
                magnet=result.magnet,
                torrent_title=result.title,
            )
            if show.id is not None:
                await self._storage.mark_downloaded(show.id, season, episode)
            self.found_magnets.append(found)
            return found

        return None
