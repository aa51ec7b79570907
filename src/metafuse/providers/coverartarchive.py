"""Cover Art Archive adapter (tier 1, professional album artwork)."""

from typing import Optional

from metafuse.models.metadata import AlbumQuery, ImageData, ImageType
from metafuse.models.sources import SOURCES, SourcedResult
from metafuse.providers.base import BaseProvider, provider_call
from metafuse.providers.musicbrainz import MusicBrainzProvider
from metafuse.utils.logger import get_logger

logger = get_logger(__name__)

# Preferred thumbnail keys with their pixel size; "large" is the legacy 500px key
THUMBNAIL_SIZES = (("500", 500), ("1200", 1200), ("large", 500))


def _best_image(images: Optional[list]) -> Optional[dict]:
    images = images or []
    if not images:
        return None
    return next((img for img in images if img.get("front")), images[0])


class CoverArtArchiveProvider(BaseProvider):
    """Cover Art Archive client. Lookups are keyed by MusicBrainz IDs."""

    source = SOURCES.COVER_ART_ARCHIVE
    key = "coverartarchive"

    def __init__(self, *args, musicbrainz: MusicBrainzProvider, **kwargs):
        super().__init__(*args, **kwargs)
        self.musicbrainz = musicbrainz

    def direct_cover_url(self, mbid: str, size: int = 500) -> str:
        """Redirecting image URL that needs no metadata request."""
        return f"{self.base_url}/release-group/{mbid}/front-{size}"

    async def fetch_listing(self, mbid: str) -> Optional[dict]:
        """Image listing for a release group, falling back to a release."""
        listing = await self._get_json(f"{self.base_url}/release-group/{mbid}")
        if listing is None:
            listing = await self._get_json(f"{self.base_url}/release/{mbid}")
        return listing

    async def _front_image(self, query: AlbumQuery, token) -> Optional[dict]:
        mbid = query.mbid or await self.musicbrainz.get_album_mbid(
            query.title, query.artist, token=token
        )
        if not mbid:
            logger.debug("No MBID available for album", title=query.title, artist=query.artist)
            return None

        listing = await self.fetch_listing(mbid)
        return _best_image((listing or {}).get("images"))

    @provider_call
    async def fetch_album_cover(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        image = await self._front_image(query, token)
        if not image:
            return None

        thumbnails = image.get("thumbnails") or {}
        url, size = None, None
        for key, px in THUMBNAIL_SIZES:
            if thumbnails.get(key):
                url, size = thumbnails[key], px
                break
        else:
            url = image.get("image")
        if not url:
            return None
        return SourcedResult(
            data=ImageData(url=url, type=ImageType.COVER, width=size, height=size),
            source=self.source,
        )

    @provider_call
    async def fetch_album_cover_hires(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        image = await self._front_image(query, token)
        if not image:
            return None

        hires = (image.get("thumbnails") or {}).get("1200")
        url = hires or image.get("image")
        if not url:
            return None
        size = 1200 if hires else None
        return SourcedResult(
            data=ImageData(url=url, type=ImageType.COVER, width=size, height=size),
            source=self.source,
        )
