"""Artist, album and image metadata models.

Every descriptive field is optional: ``None`` means "unknown", never "empty".
Each field of ArtistData and AlbumData declares how it is combined when two
results are merged (see ``metafuse.core.merger``).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

MERGE_POLICY = "merge_policy"


class MergePolicy(Enum):
    """How a field is combined when merging a primary and a secondary record."""

    OVERLAY = "overlay"  # primary if present, else secondary
    UNION = "union"  # de-duplicated union
    CONCAT = "concat"  # primary entries first, duplicates kept
    PRIMARY_WINS = "primary_wins"  # primary list if non-empty, else secondary list


def overlay():
    return field(default=None, metadata={MERGE_POLICY: MergePolicy.OVERLAY})


def union():
    return field(default=None, metadata={MERGE_POLICY: MergePolicy.UNION})


def concat():
    return field(default=None, metadata={MERGE_POLICY: MergePolicy.CONCAT})


def primary_wins():
    return field(default=None, metadata={MERGE_POLICY: MergePolicy.PRIMARY_WINS})


class ImageType(str, Enum):
    """Kinds of images a provider can return."""

    THUMB = "thumb"
    FANART = "fanart"
    LOGO = "logo"
    BANNER = "banner"
    COVER = "cover"
    PRIMARY = "primary"


@dataclass(frozen=True)
class Link:
    type: str
    url: str


@dataclass(frozen=True)
class Member:
    name: str
    active: Optional[bool] = None


@dataclass(frozen=True)
class SimilarArtist:
    name: str
    mbid: Optional[str] = None


@dataclass(frozen=True)
class Credit:
    role: str
    name: str


@dataclass(frozen=True)
class Track:
    position: int
    title: str
    duration: Optional[int] = None  # seconds


@dataclass
class ArtistData:
    """Artist information as reported by one or more providers."""

    bio: Optional[str] = overlay()
    bio_summary: Optional[str] = overlay()
    tags: Optional[List[str]] = union()
    genres: Optional[List[str]] = union()
    similar_artists: Optional[List[SimilarArtist]] = primary_wins()
    formed: Optional[str] = overlay()
    disbanded: Optional[str] = overlay()
    origin: Optional[str] = overlay()
    type: Optional[str] = overlay()
    members: Optional[List[Member]] = overlay()
    links: Optional[List[Link]] = concat()
    mbid: Optional[str] = overlay()
    # Cross-reference to the provider's encyclopedia article, consumed by
    # the biography enrichment pass.
    wiki_url: Optional[str] = overlay()


@dataclass
class AlbumData:
    """Album information as reported by one or more providers."""

    description: Optional[str] = overlay()
    description_summary: Optional[str] = overlay()
    genres: Optional[List[str]] = union()
    tags: Optional[List[str]] = union()
    release_type: Optional[str] = overlay()
    release_date: Optional[str] = overlay()
    label: Optional[str] = overlay()
    credits: Optional[List[Credit]] = concat()
    rating: Optional[float] = overlay()
    rating_count: Optional[int] = overlay()
    tracklist: Optional[List[Track]] = overlay()
    mbid: Optional[str] = overlay()
    wiki_url: Optional[str] = overlay()


@dataclass
class ImageData:
    """A single image reference."""

    url: str
    type: ImageType = ImageType.PRIMARY
    width: Optional[int] = None
    height: Optional[int] = None

    def is_empty(self) -> bool:
        return not self.url


@dataclass(frozen=True)
class ArtistQuery:
    """Lookup key for artist-level requests."""

    name: str
    mbid: Optional[str] = None


@dataclass(frozen=True)
class AlbumQuery:
    """Lookup key for album-level requests."""

    title: str
    artist: str
    mbid: Optional[str] = None


def _items(values, cls):
    if values is None:
        return None
    return [cls(**v) if isinstance(v, dict) else v for v in values]


def artist_from_dict(raw: dict) -> ArtistData:
    """Rebuild ArtistData from its ``dataclasses.asdict`` form."""
    raw = dict(raw)
    raw["similar_artists"] = _items(raw.get("similar_artists"), SimilarArtist)
    raw["members"] = _items(raw.get("members"), Member)
    raw["links"] = _items(raw.get("links"), Link)
    return ArtistData(**raw)


def album_from_dict(raw: dict) -> AlbumData:
    """Rebuild AlbumData from its ``dataclasses.asdict`` form."""
    raw = dict(raw)
    raw["credits"] = _items(raw.get("credits"), Credit)
    raw["tracklist"] = _items(raw.get("tracklist"), Track)
    return AlbumData(**raw)


def image_from_dict(raw: dict) -> ImageData:
    """Rebuild ImageData from its ``dataclasses.asdict`` form."""
    raw = dict(raw)
    raw["type"] = ImageType(raw.get("type", ImageType.PRIMARY.value))
    return ImageData(**raw)
