"""Episode numbering resolver.

Converts per-season episode numbers to show-wide absolute ordinals and
derives the set of episodes still needed for a tracked range.

Many anime releases number episodes continuously across seasons
(e.g. "Show - 25" for S2E1 of a 24-episode first season), so both
schemes must resolve to the same ordinal. Seasons with no catalog data
are assumed to have ``DEFAULT_EPISODES_PER_SEASON`` episodes.

All functions are pure and never mutate their inputs.
"""

from collections.abc import Iterable, Sequence

from anitrack.tracking.models import CatalogEntry, EpisodeKey, TrackedShow
from anitrack.tracking.normalize import normalize_show_name

DEFAULT_EPISODES_PER_SEASON = 12


def find_catalog_entry(
    names: str | Iterable[str],
    catalog: Sequence[CatalogEntry],
) -> CatalogEntry | None:
    """Find the catalog entry for a show.

    Args:
        names: A show name, or several alternate names for the same show.
        catalog: Known shows, searched in order.

    Returns:
        The first entry whose normalized name equals any of the normalized
        names, or None.
    """
    if isinstance(names, str):
        names = [names]
    wanted = {normalize_show_name(name) for name in names}

    for entry in catalog:
        if normalize_show_name(entry.name) in wanted:
            return entry
    return None


def episodes_in_season(
    entry: CatalogEntry | None,
    season: int,
    default: int = DEFAULT_EPISODES_PER_SEASON,
) -> int:
    """Get the episode count of a season, falling back to the default.

    The default applies when the show is not in the catalog, the season is
    past the recorded list, or the recorded count is zero.
    """
    if entry is None or season < 1 or season > len(entry.episodes_per_season):
        return default
    return entry.episodes_per_season[season - 1] or default


def absolute_episode(
    show_name: str,
    season: int,
    episode: int,
    catalog: Sequence[CatalogEntry],
    default: int = DEFAULT_EPISODES_PER_SEASON,
) -> int:
    """Calculate the absolute episode number of a season/episode pair.

    Args:
        show_name: Any display name of the show.
        season: 1-based season number.
        episode: 1-based episode number within the season.
        catalog: Known shows with per-season episode counts.
        default: Episode count assumed for seasons without data.

    Returns:
        Show-wide episode ordinal, always >= ``episode``.

    Example:
        With season 1 having 12 episodes, S2E3 is absolute episode 15.
    """
    entry = find_catalog_entry(show_name, catalog)

    absolute = episode
    for prior_season in range(1, season):
        absolute += episodes_in_season(entry, prior_season, default)
    return absolute


def recalculate_needed(
    show: TrackedShow,
    catalog: Sequence[CatalogEntry],
    default: int = DEFAULT_EPISODES_PER_SEASON,
) -> list[EpisodeKey]:
    """Compute the episodes of the tracked range that are not downloaded.

    Args:
        show: Tracked show with range and downloaded episodes.
        catalog: Known shows; matched against any of the show's names.
        default: Episode count assumed for seasons without data.

    Returns:
        (season, episode) pairs ordered by season, then episode.
    """
    entry = find_catalog_entry(show.names, catalog)
    downloaded = set(show.downloaded)

    needed: list[EpisodeKey] = []
    for season in range(show.start_season, show.end_season + 1):
        first = show.start_episode if season == show.start_season else 1
        if season == show.end_season:
            last = show.end_episode
        else:
            last = episodes_in_season(entry, season, default)

        for episode in range(first, last + 1):
            if (season, episode) not in downloaded:
                needed.append((season, episode))

    return needed


def reconcile(
    show: TrackedShow,
    catalog: Sequence[CatalogEntry],
    default: int = DEFAULT_EPISODES_PER_SEASON,
) -> TrackedShow:
    """Return a copy of the show with its needed episodes recalculated."""
    return show.model_copy(update={"needed": recalculate_needed(show, catalog, default)})
