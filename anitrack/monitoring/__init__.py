"""Episode scanning module.

This module provides:
- A scanner that searches Nyaa for needed episodes and records matches
- APScheduler integration for periodic scans

Usage:
    from anitrack.monitoring import Scanner, ScanScheduler

    scheduler = ScanScheduler(Scanner(storage, parser))
    scheduler.start()
"""

from anitrack.monitoring.scanner import (
    FoundMagnet,
    NothingToScanError,
    ScanError,
    ScanInProgressError,
    Scanner,
    ScanJob,
    ScanNotRunningError,
    build_queries,
)
from anitrack.monitoring.scheduler import ScanScheduler

__all__ = [
    "FoundMagnet",
    "NothingToScanError",
    "ScanError",
    "ScanInProgressError",
    "ScanJob",
    "ScanNotRunningError",
    "ScanScheduler",
    "Scanner",
    "build_queries",
]
