"""Periodic scans using APScheduler.

Usage:
    scheduler = ScanScheduler(scanner)
    scheduler.start()

    # On shutdown:
    scheduler.stop()
"""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from anitrack.config import settings
from anitrack.monitoring.scanner import (
    FoundMagnet,
    NothingToScanError,
    Scanner,
    ScanInProgressError,
)

logger = structlog.get_logger(__name__)


class ScanScheduler:
    """Runs a full scan of all tracked shows on a fixed interval."""

    def __init__(self, scanner: Scanner, interval_hours: int | None = None):
        """Initialize the scheduler.

        Args:
            scanner: Scanner used for every run
            interval_hours: Hours between scans (default: settings.scan_interval_hours)
        """
        self._scanner = scanner
        self._interval_hours = interval_hours or settings.scan_interval_hours
        self._scheduler: AsyncIOScheduler | None = None
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    def start(self) -> None:
        """Start periodic scanning. Must be called from a running event loop."""
        if self._is_running:
            logger.warning("scheduler_already_running")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            self.run_now,
            trigger=IntervalTrigger(hours=self._interval_hours),
            id="episode_scan",
            name="Episode Scan",
            replace_existing=True,
            max_instances=1,
        )
        self._scheduler.start()
        self._is_running = True

        logger.info("scan_scheduler_started", interval_hours=self._interval_hours)

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if self._scheduler and self._is_running:
            self._scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("scan_scheduler_stopped")

    async def run_now(self) -> list[FoundMagnet]:
        """Scan all shows now, skipping if a scan is already in progress."""
        try:
            return await self._scanner.scan()
        except ScanInProgressError:
            logger.warning("scheduled_scan_skipped", reason="scan_in_progress")
        except NothingToScanError:
            logger.debug("scheduled_scan_skipped", reason="no_shows")
        return []
