"""Tests for episode numbering and needed-episode reconciliation.

Tests cover:
- Show name normalization
- Absolute episode numbers with full, partial and missing catalog data
- Needed-episode ranges across seasons
- Idempotence and disjointness of the recalculated needed list
"""

import pytest

from anitrack.tracking import (
    DEFAULT_EPISODES_PER_SEASON,
    CatalogEntry,
    TrackedShow,
    absolute_episode,
    episodes_in_season,
    find_catalog_entry,
    normalize_show_name,
    recalculate_needed,
    reconcile,
    same_show,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def catalog() -> list[CatalogEntry]:
    """Catalog with one fully described two-season show."""
    return [CatalogEntry(name="X", episodes_per_season=[12, 24])]


@pytest.fixture
def demon_slayer_catalog() -> list[CatalogEntry]:
    return [
        CatalogEntry(
            name="Demon Slayer: Kimetsu no Yaiba",
            episodes_per_season=[26, 18, 11],
        )
    ]


# =============================================================================
# Normalization Tests
# =============================================================================


class TestNormalizeShowName:
    """Tests for normalize_show_name."""

    def test_colon_and_whitespace(self):
        assert normalize_show_name("Demon Slayer: Kimetsu no Yaiba") == normalize_show_name(
            "demon slayer  kimetsu no yaiba"
        )

    def test_lowercase_and_trim(self):
        assert normalize_show_name("  Frieren  ") == "frieren"

    def test_strips_punctuation(self):
        assert normalize_show_name("JoJo's Bizarre-Adventure; \"Part\" 5") == (
            "jojos bizarreadventure part 5"
        )

    def test_curly_apostrophe(self):
        assert normalize_show_name("Hell’s Paradise") == "hells paradise"

    def test_collapses_tabs_and_newlines(self):
        assert normalize_show_name("One\t\tPiece\nFilm") == "one piece film"

    def test_no_fuzzy_matching(self):
        assert not same_show("Frieren", "Frieren Beyond Journeys End")

    def test_same_show(self):
        assert same_show("Re:Zero", "rezero")


# =============================================================================
# Catalog Lookup Tests
# =============================================================================


class TestFindCatalogEntry:
    """Tests for find_catalog_entry and episodes_in_season."""

    def test_find_by_normalized_name(self, demon_slayer_catalog):
        entry = find_catalog_entry("demon slayer  kimetsu no yaiba", demon_slayer_catalog)
        assert entry is demon_slayer_catalog[0]

    def test_find_by_any_alternate_name(self, demon_slayer_catalog):
        entry = find_catalog_entry(
            ["Kimetsu no Yaiba", "Demon Slayer - Kimetsu no Yaiba"], demon_slayer_catalog
        )
        assert entry is not None
        assert entry.name == "Demon Slayer: Kimetsu no Yaiba"

    def test_first_entry_wins(self):
        catalog = [
            CatalogEntry(name="Alpha", episodes_per_season=[10]),
            CatalogEntry(name="Beta", episodes_per_season=[20]),
        ]
        entry = find_catalog_entry(["Beta", "Alpha"], catalog)
        assert entry is not None
        assert entry.name == "Alpha"

    def test_not_found(self, catalog):
        assert find_catalog_entry("Unknown Show", catalog) is None

    def test_episodes_in_season_known(self, catalog):
        assert episodes_in_season(catalog[0], 2) == 24

    def test_episodes_in_season_beyond_catalog(self, catalog):
        assert episodes_in_season(catalog[0], 3) == DEFAULT_EPISODES_PER_SEASON

    def test_episodes_in_season_zero_count(self):
        entry = CatalogEntry(name="X", episodes_per_season=[0, 13])
        assert episodes_in_season(entry, 1) == DEFAULT_EPISODES_PER_SEASON
        assert episodes_in_season(entry, 2) == 13

    def test_episodes_in_season_no_entry(self):
        assert episodes_in_season(None, 1) == DEFAULT_EPISODES_PER_SEASON
        assert episodes_in_season(None, 1, default=10) == 10


# =============================================================================
# Absolute Episode Tests
# =============================================================================


class TestAbsoluteEpisode:
    """Tests for absolute_episode."""

    @pytest.mark.parametrize(
        ("season", "episode", "expected"),
        [(1, 1, 1), (1, 12, 12), (2, 1, 13), (2, 24, 36)],
    )
    def test_known_show(self, catalog, season, episode, expected):
        assert absolute_episode("X", season, episode, catalog) == expected

    def test_unknown_show_uses_default(self):
        assert absolute_episode("Unknown Show", 3, 5, []) == 29

    def test_partial_catalog_uses_default_for_missing_seasons(self, catalog):
        # 12 + 24 + default 12 for season 3
        assert absolute_episode("X", 4, 2, catalog) == 12 + 24 + 12 + 2

    def test_zero_count_uses_default(self):
        catalog = [CatalogEntry(name="X", episodes_per_season=[0])]
        assert absolute_episode("X", 2, 1, catalog) == 13

    def test_lookup_is_normalized(self, demon_slayer_catalog):
        assert absolute_episode("demon slayer kimetsu no yaiba", 2, 1, demon_slayer_catalog) == 27

    def test_custom_default(self):
        assert absolute_episode("Unknown Show", 3, 5, [], default=13) == 31

    def test_never_below_episode(self, catalog):
        for season in range(1, 5):
            assert absolute_episode("X", season, 7, catalog) >= 7

    def test_consecutive_across_season_boundary(self, catalog):
        last_of_season_one = absolute_episode("X", 1, 12, catalog)
        assert absolute_episode("X", 2, 1, catalog) == last_of_season_one + 1


# =============================================================================
# Needed Episode Tests
# =============================================================================


class TestRecalculateNeeded:
    """Tests for recalculate_needed."""

    def test_single_season_range(self):
        show = TrackedShow(names=["X"], start_season=1, start_episode=3, end_season=1, end_episode=6)
        assert recalculate_needed(show, []) == [(1, 3), (1, 4), (1, 5), (1, 6)]

    def test_skips_downloaded(self):
        show = TrackedShow(
            names=["X"],
            start_season=1,
            start_episode=1,
            end_season=1,
            end_episode=4,
            downloaded=[(1, 2), (1, 4)],
        )
        assert recalculate_needed(show, []) == [(1, 1), (1, 3)]

    def test_multi_season_uses_catalog_counts(self, catalog):
        show = TrackedShow(names=["X"], start_season=1, start_episode=11, end_season=2, end_episode=2)
        assert recalculate_needed(show, catalog) == [(1, 11), (1, 12), (2, 1), (2, 2)]

    def test_intermediate_season_from_catalog(self):
        catalog = [CatalogEntry(name="X", episodes_per_season=[2, 3, 4])]
        show = TrackedShow(names=["X"], start_season=1, start_episode=2, end_season=3, end_episode=1)
        assert recalculate_needed(show, catalog) == [(1, 2), (2, 1), (2, 2), (2, 3), (3, 1)]

    def test_unknown_show_defaults_to_twelve(self):
        show = TrackedShow(names=["Unknown"], start_season=1, start_episode=12, end_season=2, end_episode=1)
        assert recalculate_needed(show, []) == [(1, 12), (2, 1)]

    def test_end_episode_beyond_catalog_count(self, catalog):
        # The range end wins over the catalog count on the final season
        show = TrackedShow(names=["X"], start_season=1, start_episode=11, end_season=1, end_episode=14)
        assert recalculate_needed(show, catalog) == [(1, 11), (1, 12), (1, 13), (1, 14)]

    def test_catalog_matched_by_alternate_name(self):
        catalog = [CatalogEntry(name="Sousou no Frieren", episodes_per_season=[2])]
        show = TrackedShow(
            names=["Frieren", "Sousou no Frieren"],
            start_season=1,
            start_episode=1,
            end_season=2,
            end_episode=1,
        )
        assert recalculate_needed(show, catalog) == [(1, 1), (1, 2), (2, 1)]

    def test_idempotent(self, catalog):
        show = TrackedShow(
            names=["X"],
            start_season=1,
            start_episode=1,
            end_season=2,
            end_episode=24,
            downloaded=[(1, 5), (2, 10)],
        )
        first = recalculate_needed(show, catalog)
        second = recalculate_needed(show.model_copy(update={"needed": first}), catalog)
        assert first == second

    def test_disjoint_and_within_range(self, catalog):
        show = TrackedShow(
            names=["X"],
            start_season=1,
            start_episode=4,
            end_season=3,
            end_episode=2,
            downloaded=[(1, 4), (2, 1), (2, 24), (5, 1)],
        )
        needed = recalculate_needed(show, catalog)
        assert not set(needed) & set(show.downloaded)
        assert all(show.in_range(season, episode) for season, episode in needed)

    def test_partition_covers_range(self, catalog):
        show = TrackedShow(
            names=["X"],
            start_season=1,
            start_episode=1,
            end_season=2,
            end_episode=24,
            downloaded=[(1, 1), (2, 2)],
        )
        needed = recalculate_needed(show, catalog)
        assert len(needed) + len(show.downloaded) == 36

    def test_order_is_season_major(self, catalog):
        show = TrackedShow(names=["X"], start_season=1, start_episode=1, end_season=2, end_episode=3)
        needed = recalculate_needed(show, catalog)
        assert needed == sorted(needed)

    def test_input_not_mutated(self, catalog):
        show = TrackedShow(names=["X"], needed=[(9, 9)])
        recalculate_needed(show, catalog)
        assert show.needed == [(9, 9)]


class TestReconcile:
    """Tests for reconcile."""

    def test_replaces_needed(self, catalog):
        show = TrackedShow(names=["X"], end_episode=3, needed=[(7, 7)], downloaded=[(1, 2)])
        updated = reconcile(show, catalog)
        assert updated.needed == [(1, 1), (1, 3)]
        assert updated.downloaded == [(1, 2)]
        assert show.needed == [(7, 7)]
