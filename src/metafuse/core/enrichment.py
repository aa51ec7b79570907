"""Post-fallback enrichment passes.

A winning result often lacks a long-form text or similar artists. These
passes recover only the missing fields from Wikipedia and Last.fm and never
change the result's attribution.
"""

from typing import Optional

from metafuse.core.cancellation import CancellationToken, is_cancelled
from metafuse.core.merger import fill_fields
from metafuse.models.metadata import AlbumData, AlbumQuery, ArtistData, ArtistQuery
from metafuse.models.sources import SourcedResult
from metafuse.utils.logger import get_logger

logger = get_logger(__name__)

# Texts shorter than this are stubs worth replacing
MIN_TEXT_LENGTH = 100
SIMILAR_ARTISTS_LIMIT = 5


def is_thin(text: Optional[str]) -> bool:
    """True when a bio or description is absent or too short to show."""
    return not text or len(text) < MIN_TEXT_LENGTH


class Enricher:
    """Fill thin text and missing similar artists on aggregated results."""

    def __init__(self, wikipedia=None, lastfm=None):
        """Initialize enricher.

        Args:
            wikipedia: Wikipedia adapter (text passes skipped if None)
            lastfm: Last.fm adapter (similar-artists pass skipped if None)
        """
        self.wikipedia = wikipedia
        self.lastfm = lastfm

    async def enrich_artist(
        self,
        result: SourcedResult[ArtistData],
        query: ArtistQuery,
        token: Optional[CancellationToken] = None,
    ) -> SourcedResult[ArtistData]:
        """Run the biography and similar-artists passes."""
        result = await self._artist_bio(result, query, token)
        return await self._similar_artists(result, query, token)

    async def _artist_bio(self, result, query, token):
        if self.wikipedia is None or not is_thin(result.data.bio) or is_cancelled(token):
            return result

        wiki = None
        if result.data.wiki_url:
            wiki = await self.wikipedia.fetch_bio_from_url(result.data.wiki_url, token=token)
            if wiki is not None and is_thin(wiki.data.bio):
                wiki = None
        if wiki is None and not is_cancelled(token):
            wiki = await self.wikipedia.fetch_artist_bio(query.name, token=token)
        if wiki is None or is_thin(wiki.data.bio):
            return result

        logger.debug("Biography recovered from Wikipedia", artist=query.name)
        return fill_fields(result, bio=wiki.data.bio, bio_summary=wiki.data.bio_summary)

    async def _similar_artists(self, result, query, token):
        if self.lastfm is None or result.data.similar_artists or is_cancelled(token):
            return result

        similar = await self.lastfm.fetch_similar_artists(
            query.name, SIMILAR_ARTISTS_LIMIT, token=token
        )
        if not similar:
            return result
        return fill_fields(result, similar_artists=similar)

    async def enrich_album(
        self,
        result: SourcedResult[AlbumData],
        query: AlbumQuery,
        token: Optional[CancellationToken] = None,
    ) -> SourcedResult[AlbumData]:
        """Run the description pass."""
        if self.wikipedia is None or not is_thin(result.data.description) or is_cancelled(token):
            return result

        wiki = None
        if result.data.wiki_url:
            wiki = await self.wikipedia.fetch_description_from_url(result.data.wiki_url, token=token)
            if wiki is not None and is_thin(wiki.data.description):
                wiki = None
        if wiki is None and not is_cancelled(token):
            wiki = await self.wikipedia.fetch_album_description(
                query.title, query.artist, token=token
            )
        if wiki is None or is_thin(wiki.data.description):
            return result

        logger.debug("Description recovered from Wikipedia", album=query.title)
        return fill_fields(
            result,
            description=wiki.data.description,
            description_summary=wiki.data.description_summary,
        )
