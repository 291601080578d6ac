"""Data models for tracked shows, the show catalog and parsed torrents.

These are the typed boundary of the tracking core: payloads coming from
storage, the title parser or the user are validated here, so the numbering
and matching functions can assume well-formed integers.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

EpisodeKey = tuple[int, int]


# =============================================================================
# Catalog
# =============================================================================


class CatalogEntry(BaseModel):
    """A known show with its per-season episode counts.

    Attributes:
        id: Storage identity (None before insertion).
        name: Canonical show name.
        episodes_per_season: Episode count per season, season 1 first.
            A zero count means "unknown".
    """

    id: int | None = None
    name: str = Field(..., min_length=1)
    episodes_per_season: list[int] = Field(default_factory=list)

    @field_validator("episodes_per_season")
    @classmethod
    def validate_counts(cls, v: list[int]) -> list[int]:
        """Reject negative episode counts."""
        if any(count < 0 for count in v):
            raise ValueError("episode counts must be non-negative")
        return v

    @property
    def total_episodes(self) -> int:
        """Total number of recorded episodes across all seasons."""
        return sum(self.episodes_per_season)


# =============================================================================
# Tracked Show
# =============================================================================


class TrackedShow(BaseModel):
    """A show being tracked over an inclusive season/episode range."""

    id: int | None = None
    names: list[str] = Field(..., min_length=1)
    start_season: int = Field(default=1, ge=1)
    start_episode: int = Field(default=1, ge=1)
    end_season: int = Field(default=1, ge=1)
    end_episode: int = Field(default=12, ge=1)
    quality: str = ""
    downloaded: list[EpisodeKey] = Field(default_factory=list)
    needed: list[EpisodeKey] = Field(default_factory=list)
    last_checked: datetime | None = None

    @field_validator("names")
    @classmethod
    def validate_names(cls, v: list[str]) -> list[str]:
        """Drop blank alternate names, keep at least one."""
        names = [name.strip() for name in v if name and name.strip()]
        if not names:
            raise ValueError("at least one show name is required")
        return names

    @model_validator(mode="after")
    def validate_range(self) -> "TrackedShow":
        """Reject a tracked range that ends before it starts."""
        if (self.end_season, self.end_episode) < (self.start_season, self.start_episode):
            raise ValueError("tracked range ends before it starts")
        return self

    @property
    def display_name(self) -> str:
        """Canonical name shown to the user."""
        return self.names[0]

    def in_range(self, season: int, episode: int) -> bool:
        """Check if an episode lies within the tracked range."""
        return (
            (self.start_season, self.start_episode)
            <= (season, episode)
            <= (self.end_season, self.end_episode)
        )


# =============================================================================
# Parsed Torrent
# =============================================================================


class ParsedCandidate(BaseModel):
    """Structured interpretation of a torrent title.

    Attributes:
        show_name: Show name as it appears in the title.
        season: Season number (1 when the title has none).
        episode: Episode number, may be missing for batch releases.
        quality: Video quality, e.g. "1080p".
        group: Release group.
        batch: Whether the torrent covers a range of episodes.
        batch_start: First episode of the batch (inclusive).
        batch_end: Last episode of the batch (inclusive).
    """

    show_name: str = Field(..., min_length=1)
    season: int = Field(default=1, ge=1)
    episode: int | None = Field(default=None, ge=1)
    quality: str = "Unknown"
    group: str = "Unknown"
    batch: bool = False
    batch_start: int | None = Field(default=None, ge=1)
    batch_end: int | None = Field(default=None, ge=1)

    @property
    def has_batch_range(self) -> bool:
        """True when this is a batch with both bounds present."""
        return bool(self.batch and self.batch_start and self.batch_end)

    def label(self) -> str:
        """Short human-readable label, e.g. ``S1E3`` or ``S1E1-12``."""
        if self.has_batch_range:
            return f"S{self.season}E{self.batch_start}-{self.batch_end}"
        return f"S{self.season}E{self.episode}"
