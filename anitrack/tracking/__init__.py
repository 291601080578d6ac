"""Episode tracking core.

This module provides:
- Show name normalization
- Typed models for tracked shows, the show catalog and parsed torrents
- Absolute episode numbering and needed-episode reconciliation
- Matching of parsed torrents against wanted episodes
"""

from anitrack.tracking.matcher import MatchDecision, explain_match, matches
from anitrack.tracking.models import CatalogEntry, EpisodeKey, ParsedCandidate, TrackedShow
from anitrack.tracking.normalize import normalize_show_name, same_show
from anitrack.tracking.numbering import (
    DEFAULT_EPISODES_PER_SEASON,
    absolute_episode,
    episodes_in_season,
    find_catalog_entry,
    recalculate_needed,
    reconcile,
)

__all__ = [
    # Models
    "CatalogEntry",
    "EpisodeKey",
    "ParsedCandidate",
    "TrackedShow",
    # Normalization
    "normalize_show_name",
    "same_show",
    # Numbering
    "DEFAULT_EPISODES_PER_SEASON",
    "absolute_episode",
    "episodes_in_season",
    "find_catalog_entry",
    "recalculate_needed",
    "reconcile",
    # Matching
    "MatchDecision",
    "explain_match",
    "matches",
]
