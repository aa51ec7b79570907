"""iTunes Search adapter (tier 2, Apple Music catalog artwork)."""

from typing import List, Optional

from metafuse.models.metadata import AlbumQuery, ArtistQuery, ImageData, ImageType
from metafuse.models.sources import SOURCES, SourcedResult
from metafuse.providers.base import BaseProvider, provider_call, score_match
from metafuse.utils.text import normalize_for_match

# Combined album+artist score needed to trust a ranked match
MATCH_THRESHOLD = 10


def resize_artwork(url: str, size: int = 600) -> str:
    """Rewrite the 100x100 artwork URL to another square size."""
    return url.replace("100x100", f"{size}x{size}")


def find_best_match(results: List[dict], title: str, artist: str) -> Optional[dict]:
    """Rank search results by title and artist similarity.

    Falls back to the first result when nothing scores at least
    ``MATCH_THRESHOLD``.
    """
    if not results:
        return None

    def score(result: dict) -> int:
        return score_match(result.get("collectionName"), title) + score_match(
            result.get("artistName"), artist
        )

    best = max(results, key=score)
    if score(best) >= MATCH_THRESHOLD:
        return best
    return results[0]


class ITunesProvider(BaseProvider):
    """iTunes Search API client. No API key required."""

    source = SOURCES.ITUNES
    key = "itunes"

    async def search_albums(self, term: str, limit: int = 10) -> List[dict]:
        data = await self._get_json(
            f"{self.base_url}/search",
            params={"term": term, "entity": "album", "limit": limit},
        )
        return (data or {}).get("results") or []

    async def _cover(self, query: AlbumQuery, size: int) -> Optional[SourcedResult[ImageData]]:
        results = await self.search_albums(f"{query.artist} {query.title}")
        match = find_best_match(results, query.title, query.artist)
        artwork = (match or {}).get("artworkUrl100")
        if not artwork:
            return None
        return SourcedResult(
            data=ImageData(
                url=resize_artwork(artwork, size), type=ImageType.COVER, width=size, height=size
            ),
            source=self.source,
        )

    @provider_call
    async def fetch_album_cover(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        return await self._cover(query, 600)

    @provider_call
    async def fetch_album_cover_hires(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        return await self._cover(query, 1200)

    @provider_call
    async def fetch_artist_image(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        """Artwork from one of the artist's albums, used as an artist image."""
        wanted = normalize_for_match(query.name)
        results = await self.search_albums(query.name, limit=5)
        match = next(
            (r for r in results if normalize_for_match(r.get("artistName") or "") == wanted),
            None,
        )
        artwork = (match or {}).get("artworkUrl100")
        if not artwork:
            return None
        return SourcedResult(
            data=ImageData(url=resize_artwork(artwork), type=ImageType.COVER, width=600, height=600),
            source=self.source,
        )
