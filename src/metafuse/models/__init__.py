"""Data models shared by providers, the aggregator and the API."""

from metafuse.models.metadata import (
    AlbumData,
    AlbumQuery,
    ArtistData,
    ArtistQuery,
    Credit,
    ImageData,
    ImageType,
    Link,
    Member,
    SimilarArtist,
    Track,
)
from metafuse.models.sources import SOURCES, SourceInfo, SourcedResult, SourceTier

__all__ = [
    "AlbumData",
    "AlbumQuery",
    "ArtistData",
    "ArtistQuery",
    "Credit",
    "ImageData",
    "ImageType",
    "Link",
    "Member",
    "SimilarArtist",
    "SOURCES",
    "SourceInfo",
    "SourcedResult",
    "SourceTier",
    "Track",
]
