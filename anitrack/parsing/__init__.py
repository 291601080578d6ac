"""Torrent title parsing with a TTL result cache."""

from anitrack.parsing.cache import TTLCache
from anitrack.parsing.title_parser import (
    ParseOutcome,
    TitleParser,
    candidate_from_payload,
    extract_json_object,
)

__all__ = [
    "ParseOutcome",
    "TTLCache",
    "TitleParser",
    "candidate_from_payload",
    "extract_json_object",
]
