"""Search module for the Nyaa anime torrent index."""

from anitrack.search.nyaa import (
    NyaaClient,
    NyaaError,
    NyaaResult,
    NyaaUnavailableError,
    search_nyaa,
)

__all__ = [
    "NyaaClient",
    "NyaaError",
    "NyaaResult",
    "NyaaUnavailableError",
    "search_nyaa",
]
