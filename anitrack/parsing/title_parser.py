"""Torrent title parser backed by the Claude API.

Anime release titles are too irregular for a fixed set of regexes
("[Group] Show S2 - 03 (1080p)", "Show - 27 [720p]", "Show (01-12) [Batch]"),
so each title is sent to Claude with a fixed instruction prompt and the
JSON reply is validated into a ParsedCandidate.

Titles that cannot be interpreted yield None. Replies are validated here,
so malformed data never reaches the matching core.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

import anthropic
import structlog
from pydantic import ValidationError

from anitrack.config import settings
from anitrack.parsing.cache import TTLCache
from anitrack.tracking.models import ParsedCandidate

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that parses anime torrent titles into structured data. "
    "Return only valid JSON."
)

PARSE_PROMPT = """Parse the following anime torrent title into structured data:
"{title}"

Return a JSON object with these fields:
- showName: The name of the anime show
- season: The season number (default to 1 if not specified)
- episode: The episode number
- quality: The video quality (e.g., "1080p", "720p")
- group: The release group
- batch: Boolean indicating if this is a batch release
- batchStart: If batch is true, the starting episode number
- batchEnd: If batch is true, the ending episode number

Only return the JSON object, nothing else."""

_JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


@dataclass
class ParseOutcome:
    """Result of parsing one title.

    Attributes:
        candidate: Parsed title, or None if it could not be interpreted.
        from_cache: Whether the result came from the cache.
    """

    candidate: ParsedCandidate | None
    from_cache: bool = False


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Extract the first JSON object embedded in a model reply."""
    match = _JSON_OBJECT_PATTERN.search(text)
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _batch_bound(value: Any) -> Any:
    """Treat zero or negative batch bounds as missing."""
    if not value or (isinstance(value, int | float) and value < 1):
        return None
    return value


def candidate_from_payload(data: dict[str, Any]) -> ParsedCandidate | None:
    """Build a ParsedCandidate from the parser's camelCase JSON payload.

    Payloads without a show name or episode number are rejected, as are
    payloads with values of the wrong type. Unusable batch bounds are
    dropped, so the title is matched as a single episode instead.
    """
    if not data.get("showName") or not data.get("episode"):
        return None

    try:
        return ParsedCandidate(
            show_name=data["showName"],
            season=data.get("season") or 1,
            episode=data["episode"],
            quality=data.get("quality") or "Unknown",
            group=data.get("group") or "Unknown",
            batch=bool(data.get("batch")),
            batch_start=_batch_bound(data.get("batchStart")),
            batch_end=_batch_bound(data.get("batchEnd")),
        )
    except ValidationError as e:
        logger.debug("parsed_title_rejected", error=str(e))
        return None


class TitleParser:
    """Parses torrent titles via Claude with a TTL cache in front.

    Example:
        parser = TitleParser()
        outcome = await parser.parse("[SubsPlease] Frieren - 03 (1080p)")
        if outcome.candidate:
            print(outcome.candidate.label())
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        cache: TTLCache | None = None,
    ):
        """Initialize the parser.

        Args:
            api_key: Anthropic API key (default: from settings)
            model: Model ID (default: settings.parser_model)
            cache: Cache for parse results (default: persistent cache from settings)
        """
        if api_key is None and settings.anthropic_api_key is not None:
            api_key = settings.anthropic_api_key.get_secret_value()

        # Without a key every title is left unparsed
        self.client = anthropic.AsyncAnthropic(api_key=api_key) if api_key else None
        self.model = model or settings.parser_model

        if cache is None:
            cache = TTLCache(ttl=settings.parse_cache_ttl, path=settings.parse_cache_path)
            cache.load()
        self.cache = cache

        logger.info("title_parser_initialized", model=self.model, cached=len(self.cache))

    async def _ask(self, title: str) -> str:
        """Send one title to the model and return its text reply."""
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=512,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": PARSE_PROMPT.format(title=title)}],
        )
        text_blocks = [block.text for block in response.content if hasattr(block, "text")]
        return "\n".join(text_blocks)

    async def parse(self, title: str) -> ParseOutcome:
        """Parse a torrent title.

        API failures are logged and reported as an unparsed title, so a
        single failing title does not abort a scan. Without an API key only
        cached titles are parsed.

        Args:
            title: Raw torrent title.

        Returns:
            ParseOutcome with the candidate (or None) and cache status.
        """
        cached = self.cache.get(title)
        if cached is not None:
            payload = cached.get("parsed")
            candidate = ParsedCandidate.model_validate(payload) if payload else None
            return ParseOutcome(candidate, from_cache=True)

        if self.client is None:
            logger.debug("title_parse_skipped", title=title, reason="no_api_key")
            return ParseOutcome(None)

        try:
            reply = await self._ask(title)
        except anthropic.APIError as e:
            logger.error("title_parse_api_error", title=title, error=str(e))
            return ParseOutcome(None)

        data = extract_json_object(reply)
        if data is None:
            logger.warning("title_parse_no_json", title=title)
            return ParseOutcome(None)

        candidate = candidate_from_payload(data)
        self.cache.set(title, {"parsed": candidate.model_dump() if candidate else None})

        logger.debug(
            "title_parsed",
            title=title,
            parsed=candidate.label() if candidate else None,
        )
        return ParseOutcome(candidate)
