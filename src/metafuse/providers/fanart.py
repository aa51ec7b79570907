"""Fanart.tv adapter (tier 4, specialized high-quality artist artwork)."""

from typing import Optional

from metafuse.models.metadata import AlbumQuery, ArtistQuery, ImageData, ImageType
from metafuse.models.sources import SOURCES, SourcedResult
from metafuse.providers.base import BaseProvider, provider_call
from metafuse.providers.musicbrainz import MusicBrainzProvider
from metafuse.utils.logger import get_logger
from metafuse.utils.text import parse_int

logger = get_logger(__name__)


def most_liked(images: Optional[list]) -> Optional[dict]:
    """Pick the image with the most community likes."""
    images = [img for img in images or [] if img.get("url")]
    if not images:
        return None
    return max(images, key=lambda img: parse_int(img.get("likes")) or 0)


class FanartProvider(BaseProvider):
    """Fanart.tv music API client. Requires an API key and artist MBIDs."""

    source = SOURCES.FANART
    key = "fanart"

    def __init__(self, *args, musicbrainz: MusicBrainzProvider, **kwargs):
        super().__init__(*args, **kwargs)
        self.musicbrainz = musicbrainz

    async def fetch_artist(self, mbid: str) -> Optional[dict]:
        return await self._get_json(f"{self.base_url}/{mbid}", params={"api_key": self.api_key})

    async def _artist_for(self, query: ArtistQuery, token) -> Optional[dict]:
        if not self.api_key:
            logger.debug("Fanart.tv API key not configured, skipping")
            return None

        mbid = query.mbid or await self.musicbrainz.get_artist_mbid(query.name, token=token)
        if not mbid:
            logger.debug("No MBID available for artist", artist=query.name)
            return None
        return await self.fetch_artist(mbid)

    def _result(self, image: dict, image_type: ImageType) -> SourcedResult[ImageData]:
        return SourcedResult(data=ImageData(url=image["url"], type=image_type), source=self.source)

    @provider_call
    async def fetch_artist_image(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        artist = await self._artist_for(query, token) or {}

        thumb = most_liked(artist.get("artistthumb"))
        if thumb:
            return self._result(thumb, ImageType.THUMB)

        background = most_liked(artist.get("artistbackground"))
        if background:
            return self._result(background, ImageType.FANART)
        return None

    @provider_call
    async def fetch_artist_background(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        artist = await self._artist_for(query, token) or {}
        background = most_liked(artist.get("artistbackground"))
        return self._result(background, ImageType.FANART) if background else None

    @provider_call
    async def fetch_artist_logo(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        artist = await self._artist_for(query, token) or {}
        logo = most_liked(artist.get("hdmusiclogo")) or most_liked(artist.get("musiclogo"))
        return self._result(logo, ImageType.LOGO) if logo else None

    @provider_call
    async def fetch_album_cover(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        """Album cover from the artist record, keyed by release-group MBID."""
        album_mbid = query.mbid or await self.musicbrainz.get_album_mbid(
            query.title, query.artist, token=token
        )
        if not album_mbid:
            return None

        artist = await self._artist_for(ArtistQuery(name=query.artist), token) or {}
        album = (artist.get("albums") or {}).get(album_mbid) or {}
        cover = most_liked(album.get("albumcover"))
        return self._result(cover, ImageType.COVER) if cover else None
