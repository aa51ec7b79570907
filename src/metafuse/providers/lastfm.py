"""Last.fm adapter (tier 3, community bios, tags and similar artists)."""

from typing import List, Optional

from metafuse.models.metadata import (
    AlbumData,
    AlbumQuery,
    ArtistData,
    ArtistQuery,
    ImageData,
    ImageType,
    Link,
    SimilarArtist,
    Track,
)
from metafuse.models.sources import SOURCES, SourcedResult
from metafuse.providers.base import BaseProvider, as_list, provider_call
from metafuse.utils.logger import get_logger
from metafuse.utils.text import non_empty, parse_int, strip_html

logger = get_logger(__name__)

IMAGE_SIZES = ("mega", "extralarge", "large", "medium", "small")


def best_image(images: Optional[list]) -> Optional[str]:
    """Largest non-blank image URL from a Last.fm image array."""
    images = as_list(images)
    by_size = {img.get("size"): img.get("#text") for img in images}
    for size in IMAGE_SIZES:
        if by_size.get(size):
            return by_size[size]
    return next((img.get("#text") for img in images if img.get("#text")), None)


def _tag_names(tags: Optional[dict]) -> List[str]:
    return [t["name"] for t in as_list((tags or {}).get("tag")) if t.get("name")]


class LastFmProvider(BaseProvider):
    """Last.fm web service client. Requires an API key."""

    source = SOURCES.LASTFM
    key = "lastfm"

    async def _call(self, method: str, **params) -> Optional[dict]:
        if not self.api_key:
            logger.debug("Last.fm API key not configured, skipping", method=method)
            return None

        data = await self._get_json(
            self.base_url + "/",
            params={"method": method, "api_key": self.api_key, "format": "json", **params},
        )
        if data and "error" in data:
            # Last.fm reports "not found" as an error payload
            logger.debug("Last.fm error response", method=method, message=data.get("message"))
            return None
        return data

    async def _artist_info(self, name: str) -> Optional[dict]:
        data = await self._call("artist.getinfo", artist=name, autocorrect="1")
        return (data or {}).get("artist")

    async def _album_info(self, query: AlbumQuery) -> Optional[dict]:
        data = await self._call(
            "album.getinfo", artist=query.artist, album=query.title, autocorrect="1"
        )
        return (data or {}).get("album")

    @provider_call
    async def fetch_artist_data(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ArtistData]]:
        artist = await self._artist_info(query.name)
        if not artist:
            return None

        bio = artist.get("bio") or {}
        content = non_empty(strip_html(bio.get("content") or ""))
        summary = non_empty(strip_html(bio.get("summary") or ""))

        data = ArtistData(
            bio=content,
            bio_summary=summary,
            mbid=non_empty(artist.get("mbid")),
            tags=_tag_names(artist.get("tags")) or None,
            similar_artists=[
                SimilarArtist(name=a["name"])
                for a in as_list((artist.get("similar") or {}).get("artist"))
                if a.get("name")
            ]
            or None,
            links=[Link(type="lastfm", url=artist["url"])] if artist.get("url") else None,
        )
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def fetch_album_data(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[AlbumData]]:
        album = await self._album_info(query)
        if not album:
            return None

        wiki = album.get("wiki") or {}
        description = non_empty(strip_html(wiki.get("content") or ""))
        tracks = as_list((album.get("tracks") or {}).get("track"))

        data = AlbumData(
            description=description,
            description_summary=non_empty(strip_html(wiki.get("summary") or "")),
            mbid=non_empty(album.get("mbid")),
            tags=_tag_names(album.get("tags")) or None,
            tracklist=[
                Track(
                    position=parse_int((t.get("@attr") or {}).get("rank")) or 0,
                    title=t.get("name", ""),
                    duration=parse_int(t.get("duration")) or None,
                )
                for t in tracks
            ]
            or None,
        )
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def fetch_artist_image(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        artist = await self._artist_info(query.name)
        url = best_image((artist or {}).get("image"))
        if not url:
            return None
        return SourcedResult(data=ImageData(url=url, type=ImageType.PRIMARY), source=self.source)

    @provider_call
    async def fetch_album_cover(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        album = await self._album_info(query)
        url = best_image((album or {}).get("image"))
        if not url:
            return None
        return SourcedResult(data=ImageData(url=url, type=ImageType.COVER), source=self.source)

    @provider_call(default_factory=list)
    async def fetch_similar_artists(
        self, name: str, limit: int = 10, token=None
    ) -> List[SimilarArtist]:
        data = await self._call(
            "artist.getsimilar", artist=name, limit=str(limit), autocorrect="1"
        )
        artists = as_list(((data or {}).get("similarartists") or {}).get("artist"))
        return [
            SimilarArtist(name=a["name"], mbid=non_empty(a.get("mbid")))
            for a in artists[:limit]
            if a.get("name")
        ]
