"""Wikipedia adapter (tier 3, article summaries for biographies)."""

import re
from typing import Optional, Tuple
from urllib.parse import quote, unquote

from metafuse.models.metadata import AlbumData, ArtistData
from metafuse.models.sources import SOURCES, SourcedResult
from metafuse.providers.base import BaseProvider, provider_call
from metafuse.utils.text import summarize

# Extracts at or below this length are disambiguation stubs or redirects
MIN_EXTRACT_LENGTH = 100

_ARTICLE_URL = re.compile(r"//(\w+)\.wikipedia\.org/wiki/(.+)$")


def parse_wikipedia_url(url: str) -> Optional[Tuple[str, str]]:
    """Split an article URL into (language, title).

    Examples:
        "https://en.wikipedia.org/wiki/Radiohead" -> ("en", "Radiohead")
        "https://example.com/Radiohead" -> None
    """
    match = _ARTICLE_URL.search(url or "")
    if not match:
        return None
    return match.group(1), unquote(match.group(2))


class WikipediaProvider(BaseProvider):
    """Wikipedia REST summary and opensearch client.

    ``base_url`` may contain a ``{lang}`` placeholder for the wiki language.
    """

    source = SOURCES.WIKIPEDIA
    key = "wikipedia"

    ARTIST_SUFFIXES = ("{name} (band)", "{name} (musician)", "{name} (singer)", "{name}")
    ALBUM_PATTERNS = ("{title} ({artist} album)", "{title} (album)", "{title} {artist}")

    def _wiki(self, lang: str = "en") -> str:
        return self.base_url.replace("{lang}", lang)

    async def fetch_summary(self, title: str, lang: str = "en") -> Optional[dict]:
        """Fetch the REST summary of one article."""
        return await self._get_json(
            f"{self._wiki(lang)}/api/rest_v1/page/summary/{quote(title, safe='')}"
        )

    async def search(self, term: str) -> Optional[str]:
        """Return the top opensearch title for a term."""
        data = await self._get_json(
            f"{self._wiki()}/w/api.php",
            params={"action": "opensearch", "search": term, "limit": 1, "format": "json"},
        )
        # [query, [titles], [descriptions], [urls]]
        if not isinstance(data, list) or len(data) < 2 or not data[1]:
            return None
        return data[1][0]

    async def _search_extract(self, terms) -> Optional[str]:
        for term in terms:
            title = await self.search(term)
            if not title:
                continue
            summary = await self.fetch_summary(title)
            extract = (summary or {}).get("extract") or ""
            if len(extract) > MIN_EXTRACT_LENGTH:
                return extract
        return None

    @provider_call
    async def fetch_bio_from_url(
        self, wiki_url: str, token=None
    ) -> Optional[SourcedResult[ArtistData]]:
        """Biography from a known article URL (e.g. a MusicBrainz relation)."""
        parsed = parse_wikipedia_url(wiki_url)
        if not parsed:
            return None
        lang, title = parsed

        summary = await self.fetch_summary(title, lang)
        extract = (summary or {}).get("extract")
        if not extract:
            return None

        page = ((summary.get("content_urls") or {}).get("desktop") or {}).get("page")
        data = ArtistData(bio=extract, bio_summary=summarize(extract), wiki_url=page or wiki_url)
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def fetch_description_from_url(
        self, wiki_url: str, token=None
    ) -> Optional[SourcedResult[AlbumData]]:
        """Album description from a known article URL."""
        bio = await self.fetch_bio_from_url(wiki_url, token=token)
        if not bio:
            return None
        data = AlbumData(
            description=bio.data.bio,
            description_summary=bio.data.bio_summary,
            wiki_url=bio.data.wiki_url,
        )
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def fetch_artist_bio(
        self, name: str, token=None
    ) -> Optional[SourcedResult[ArtistData]]:
        """Search likely article titles for an artist biography."""
        extract = await self._search_extract(s.format(name=name) for s in self.ARTIST_SUFFIXES)
        if not extract:
            return None
        return SourcedResult(
            data=ArtistData(bio=extract, bio_summary=summarize(extract)), source=self.source
        )

    @provider_call
    async def fetch_album_description(
        self, title: str, artist: str, token=None
    ) -> Optional[SourcedResult[AlbumData]]:
        """Search likely article titles for an album description."""
        extract = await self._search_extract(
            p.format(title=title, artist=artist) for p in self.ALBUM_PATTERNS
        )
        if not extract:
            return None
        return SourcedResult(
            data=AlbumData(description=extract, description_summary=summarize(extract)),
            source=self.source,
        )
