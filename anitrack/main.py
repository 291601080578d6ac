"""Main entry point for the episode tracker.

Runs one scan of all tracked shows on startup, then keeps scanning on
the configured interval until interrupted.
"""

import asyncio
import sys
from typing import NoReturn

from anitrack.config import settings
from anitrack.logger import get_logger
from anitrack.monitoring import Scanner, ScanScheduler
from anitrack.parsing import TitleParser
from anitrack.storage import get_storage

logger = get_logger(__name__)


async def main_async() -> None:
    """Main async entry point."""
    logger.info(
        "tracker_starting",
        environment=settings.environment,
        log_level=settings.log_level,
        config=settings.get_safe_dict(),
    )

    if not settings.has_title_parser:
        logger.warning("title_parser_not_configured", hint="set ANTHROPIC_API_KEY")

    async with get_storage() as storage:
        scanner = Scanner(storage, TitleParser())
        scheduler = ScanScheduler(scanner)

        scheduler.start()
        try:
            await scheduler.run_now()
            await asyncio.Event().wait()
        finally:
            scheduler.stop()


def main() -> NoReturn:
    """Main entry point, used by the ``anitrack`` console script."""
    try:
        asyncio.run(main_async())
    except KeyboardInterrupt:
        logger.info("tracker_interrupted")
        sys.exit(0)
    except Exception as e:
        logger.exception("tracker_crashed", error=str(e))
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
