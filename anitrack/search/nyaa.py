"""Nyaa torrent search client.

Provides async search against the Nyaa anime index (or a mirror).
Parses the HTML result table into typed results, sorted by seeders.

Note: one request per search; retry and rate limiting belong to the caller.
"""

import re
from urllib.parse import urljoin

import httpx
import structlog
from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

NYAA_BASE_URL = "https://nyaa.si"

# Anime - English-translated
DEFAULT_CATEGORY = "1_2"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

REQUEST_TIMEOUT = 30.0

# Nyaa marks trusted uploads "success" and remakes "danger"
ROW_SELECTOR = "tr.default, tr.success, tr.danger"

_SIZE_UNITS = {
    "B": 1,
    "KIB": 1024,
    "MIB": 1024**2,
    "GIB": 1024**3,
    "TIB": 1024**4,
    "KB": 1000,
    "MB": 1000**2,
    "GB": 1000**3,
    "TB": 1000**4,
}


# =============================================================================
# Exceptions
# =============================================================================


class NyaaError(Exception):
    """Base exception for Nyaa errors."""

    pass


class NyaaUnavailableError(NyaaError):
    """Raised when Nyaa is unreachable, blocked or overloaded."""

    pass


# =============================================================================
# Data Models
# =============================================================================


class NyaaResult(BaseModel):
    """A single Nyaa search result."""

    title: str = Field(..., description="Torrent title")
    link: str = Field(default="", description="Torrent page URL")
    magnet: str = Field(default="", description="Magnet link")
    size: str = Field(default="Unknown", description="Human-readable size")
    size_bytes: int = Field(default=0, ge=0, description="Size in bytes")
    date: str = Field(default="Unknown", description="Upload date")
    seeders: int = Field(default=0, ge=0)
    leechers: int = Field(default=0, ge=0)

    def to_display_string(self) -> str:
        """Format result for logs and listings."""
        return f"{self.title} | {self.size} | S:{self.seeders} L:{self.leechers}"


# =============================================================================
# Helper Functions
# =============================================================================


def parse_size(size_str: str) -> int:
    """Convert a Nyaa size string (e.g. "1.4 GiB") to bytes.

    Returns:
        Size in bytes, 0 if the string cannot be parsed.
    """
    match = re.match(r"\s*([\d.]+)\s*([KMGT]i?B|B)\s*$", size_str, re.IGNORECASE)
    if not match:
        return 0
    try:
        return int(float(match.group(1)) * _SIZE_UNITS[match.group(2).upper()])
    except (ValueError, KeyError):
        return 0


def _cell_int(cell: Tag | None) -> int:
    if cell is None:
        return 0
    text = cell.get_text(strip=True)
    return int(text) if text.isdigit() else 0


# =============================================================================
# Nyaa Client
# =============================================================================


class NyaaClient:
    """Async client for searching Nyaa.

    Example:
        async with NyaaClient() as client:
            results = await client.search("Frieren 1080p")
            for result in results:
                print(result.title, result.magnet)
    """

    def __init__(
        self,
        base_url: str = NYAA_BASE_URL,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "NyaaClient":
        """Enter async context manager."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            },
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the HTTP client, ensuring it's initialized.

        Raises:
            RuntimeError: If client is not initialized (not in context manager).
        """
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._client

    async def _fetch_page(self, params: dict[str, str]) -> str:
        """Fetch a search results page.

        Raises:
            NyaaUnavailableError: If the site is unreachable or overloaded.
            NyaaError: For other HTTP errors.
        """
        url = f"{self.base_url}/"
        logger.debug("fetching_page", url=url, params=params)

        try:
            response = await self.client.get(url, params=params)
            response.raise_for_status()
            return response.text
        except httpx.ConnectError as e:
            logger.error("connection_error", url=url, error=str(e))
            raise NyaaUnavailableError(f"Cannot connect to Nyaa: {e}") from e
        except httpx.TimeoutException as e:
            logger.error("timeout_error", url=url, error=str(e))
            raise NyaaUnavailableError(f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            logger.error("request_error", url=url, error=str(e), error_type=type(e).__name__)
            raise NyaaUnavailableError(f"Request to Nyaa failed: {e}") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("http_error", url=url, status=status)
            if status in (403, 429) or status >= 500:
                raise NyaaUnavailableError(f"Nyaa returned error {status}") from e
            raise NyaaError(f"Failed to fetch from Nyaa: HTTP {status}") from e

    def _parse_search_results(self, html: str) -> list[NyaaResult]:
        """Parse the results table of a search page."""
        soup = BeautifulSoup(html, "lxml")
        results: list[NyaaResult] = []

        for row in soup.select(ROW_SELECTOR):
            result = self._parse_result_row(row)
            if result is not None:
                results.append(result)

        logger.debug("parsed_results", count=len(results))
        return results

    def _parse_result_row(self, row: Tag) -> NyaaResult | None:
        """Parse one table row, skipping rows without a title or magnet."""
        title_link = None
        for anchor in row.select('a[href^="/view/"]'):
            if "comments" not in (anchor.get("class") or []):
                title_link = anchor
                break
        magnet_link = row.select_one('a[href^="magnet:"]')
        if title_link is None or magnet_link is None:
            return None

        title = str(title_link.get("title") or title_link.get_text(strip=True))
        if not title:
            return None

        cells = row.find_all("td")
        size = cells[3].get_text(strip=True) if len(cells) > 3 else "Unknown"
        date = cells[4].get_text(strip=True) if len(cells) > 4 else "Unknown"

        return NyaaResult(
            title=title,
            link=urljoin(self.base_url + "/", str(title_link.get("href"))),
            magnet=str(magnet_link.get("href")),
            size=size,
            size_bytes=parse_size(size),
            date=date or "Unknown",
            seeders=_cell_int(cells[5] if len(cells) > 5 else None),
            leechers=_cell_int(cells[6] if len(cells) > 6 else None),
        )

    async def search(
        self,
        query: str,
        category: str = DEFAULT_CATEGORY,
        min_seeds: int = 0,
    ) -> list[NyaaResult]:
        """Search Nyaa.

        Args:
            query: Free-text search query.
            category: Nyaa category code.
            min_seeds: Drop results with fewer seeders.

        Returns:
            Results sorted by seeders, most first.

        Raises:
            NyaaUnavailableError: If Nyaa is unavailable.
            NyaaError: For other errors.
        """
        params = {"f": "0", "c": category, "q": query, "s": "seeders", "o": "desc"}
        logger.info("searching_nyaa", query=query, category=category)

        html = await self._fetch_page(params)
        results = self._parse_search_results(html)

        if min_seeds > 0:
            results = [r for r in results if r.seeders >= min_seeds]

        results.sort(key=lambda r: r.seeders, reverse=True)
        logger.info("nyaa_search_completed", query=query, count=len(results))
        return results


# =============================================================================
# Convenience Functions
# =============================================================================


async def search_nyaa(
    query: str,
    category: str = DEFAULT_CATEGORY,
    min_seeds: int = 0,
    base_url: str = NYAA_BASE_URL,
) -> list[NyaaResult]:
    """Search Nyaa with a short-lived client.

    Example:
        results = await search_nyaa("Frieren S2 E3 1080p")
    """
    async with NyaaClient(base_url=base_url) as client:
        return await client.search(query, category=category, min_seeds=min_seeds)
