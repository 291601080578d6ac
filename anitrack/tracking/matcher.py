"""Match evaluator for parsed torrent titles.

Decides whether a parsed torrent satisfies a requested episode of a
tracked show. Checks run cheapest first and short-circuit:

1. Show identity (normalized name equality against any alternate name)
2. Quality (substring of the parsed quality)
3. Batch range, per season or via absolute numbering
4. Single episode, exact or via absolute numbering
"""

from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from anitrack.tracking.models import CatalogEntry, ParsedCandidate, TrackedShow
from anitrack.tracking.normalize import normalize_show_name
from anitrack.tracking.numbering import DEFAULT_EPISODES_PER_SEASON, absolute_episode

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MatchDecision:
    """Outcome of a match evaluation.

    Attributes:
        matched: Whether the candidate satisfies the target episode.
        reason: Short code naming the check that decided the outcome.
    """

    matched: bool
    reason: str

    def __bool__(self) -> bool:
        return self.matched


def explain_match(
    candidate: ParsedCandidate,
    show: TrackedShow,
    target_season: int,
    target_episode: int,
    catalog: Sequence[CatalogEntry],
    default: int = DEFAULT_EPISODES_PER_SEASON,
) -> MatchDecision:
    """Evaluate a parsed torrent against a target episode.

    Args:
        candidate: Parsed torrent title.
        show: Tracked show the target belongs to.
        target_season: Season of the wanted episode.
        target_episode: Episode number of the wanted episode.
        catalog: Known shows, used for absolute numbering.
        default: Episode count assumed for seasons without data.

    Returns:
        MatchDecision with the verdict and the deciding check.
    """
    parsed_name = normalize_show_name(candidate.show_name)
    if not any(normalize_show_name(name) == parsed_name for name in show.names):
        return MatchDecision(False, "name_mismatch")

    if show.quality and show.quality not in candidate.quality:
        return MatchDecision(False, "quality_mismatch")

    # Absolute numbering always uses the canonical name as catalog key
    canonical = show.names[0]

    if candidate.has_batch_range:
        # has_batch_range guarantees both bounds are set
        batch_start = candidate.batch_start or 0
        batch_end = candidate.batch_end or 0

        if candidate.season == target_season:
            return MatchDecision(batch_start <= target_episode <= batch_end, "batch_same_season")

        target_abs = absolute_episode(canonical, target_season, target_episode, catalog, default)
        start_abs = absolute_episode(canonical, candidate.season, batch_start, catalog, default)
        end_abs = absolute_episode(canonical, candidate.season, batch_end, catalog, default)
        logger.debug(
            "batch_absolute_comparison",
            show=canonical,
            target=target_abs,
            batch_start=start_abs,
            batch_end=end_abs,
        )
        return MatchDecision(start_abs <= target_abs <= end_abs, "batch_absolute")

    if candidate.episode is None:
        # Batch flag without a usable range and no episode number
        return MatchDecision(False, "incomplete_batch")

    if candidate.season == target_season and candidate.episode == target_episode:
        return MatchDecision(True, "exact")

    target_abs = absolute_episode(canonical, target_season, target_episode, catalog, default)
    parsed_abs = absolute_episode(canonical, candidate.season, candidate.episode, catalog, default)
    if target_abs == parsed_abs:
        return MatchDecision(True, "absolute")
    return MatchDecision(False, "episode_mismatch")


def matches(
    candidate: ParsedCandidate,
    show: TrackedShow,
    target_season: int,
    target_episode: int,
    catalog: Sequence[CatalogEntry],
    default: int = DEFAULT_EPISODES_PER_SEASON,
) -> bool:
    """Check if a parsed torrent satisfies the target episode of a show."""
    return explain_match(
        candidate, show, target_season, target_episode, catalog, default
    ).matched
