"""Source attribution models."""

import time
from dataclasses import dataclass, field, is_dataclass, fields
from enum import IntEnum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class SourceTier(IntEnum):
    """Credibility tier of a provider (lower is more authoritative)."""

    PROFESSIONAL = 1
    COMMERCIAL = 2
    COMMUNITY = 3
    SPECIALIZED = 4


@dataclass(frozen=True)
class SourceInfo:
    """Identifies the provider that produced a result."""

    name: str
    tier: SourceTier
    url: Optional[str] = None

    def __str__(self) -> str:
        """Human-readable representation."""
        return f"{self.name} (tier {int(self.tier)})"


class SOURCES:
    """Registry of every provider MetaFuse knows about."""

    MUSICBRAINZ = SourceInfo("MusicBrainz", SourceTier.PROFESSIONAL, "https://musicbrainz.org")
    DISCOGS = SourceInfo("Discogs", SourceTier.PROFESSIONAL, "https://www.discogs.com")
    COVER_ART_ARCHIVE = SourceInfo(
        "Cover Art Archive", SourceTier.PROFESSIONAL, "https://coverartarchive.org"
    )
    ITUNES = SourceInfo("iTunes", SourceTier.COMMERCIAL, "https://music.apple.com")
    LASTFM = SourceInfo("Last.fm", SourceTier.COMMUNITY, "https://www.last.fm")
    THEAUDIODB = SourceInfo("TheAudioDB", SourceTier.COMMUNITY, "https://www.theaudiodb.com")
    WIKIPEDIA = SourceInfo("Wikipedia", SourceTier.COMMUNITY, "https://www.wikipedia.org")
    WIKIDATA = SourceInfo("Wikidata", SourceTier.COMMUNITY, "https://www.wikidata.org")
    FANART = SourceInfo("Fanart.tv", SourceTier.SPECIALIZED, "https://fanart.tv")


def is_empty_value(value) -> bool:
    """Return True for values that carry no information (None, "", [], {})."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, set, dict)):
        return len(value) == 0
    return False


def has_data(data) -> bool:
    """Check whether a payload carries at least one known field."""
    if data is None:
        return False
    if hasattr(data, "is_empty"):
        return not data.is_empty()
    if is_dataclass(data):
        return any(not is_empty_value(getattr(data, f.name)) for f in fields(data))
    return not is_empty_value(data)


@dataclass
class SourcedResult(Generic[T]):
    """A data payload paired with the provider that produced it.

    Never wraps emptiness: a provider that found nothing returns ``None``
    instead of a SourcedResult.
    """

    data: T
    source: SourceInfo
    fetched_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if not has_data(self.data):
            raise ValueError(f"SourcedResult from {self.source.name} has no data")
