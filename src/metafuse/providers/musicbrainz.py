"""MusicBrainz adapter (tier 1, community-verified professional metadata)."""

from typing import List, Optional

from metafuse.models.metadata import AlbumData, AlbumQuery, ArtistData, ArtistQuery, Link
from metafuse.models.sources import SOURCES, SourcedResult
from metafuse.providers.base import BaseProvider, pick_best_match, provider_call
from metafuse.utils.logger import get_logger
from metafuse.utils.text import non_empty

logger = get_logger(__name__)

MAX_ARTIST_TAGS = 6
MAX_ALBUM_GENRES = 4


def _lucene_phrase(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _top_tags(tags: Optional[list], limit: int) -> List[str]:
    ranked = sorted(tags or [], key=lambda t: t.get("count", 0), reverse=True)
    return [t["name"] for t in ranked[:limit] if t.get("name")]


def extract_wikipedia_url(relations: Optional[list]) -> Optional[str]:
    """Find the Wikipedia article among a record's URL relations."""
    for relation in relations or []:
        if relation.get("type") == "wikipedia":
            url = (relation.get("url") or {}).get("resource")
            if url:
                return url
    return None


class MusicBrainzProvider(BaseProvider):
    """MusicBrainz web service client."""

    source = SOURCES.MUSICBRAINZ
    key = "musicbrainz"

    async def search_artist(self, name: str) -> Optional[dict]:
        data = await self._get_json(
            f"{self.base_url}/artist/",
            params={"query": f"artist:{_lucene_phrase(name)}", "fmt": "json", "limit": 5},
        )
        return pick_best_match((data or {}).get("artists") or [], lambda a: a.get("name"), name)

    async def get_artist(self, mbid: str) -> Optional[dict]:
        return await self._get_json(
            f"{self.base_url}/artist/{mbid}", params={"inc": "tags url-rels", "fmt": "json"}
        )

    async def search_release_group(self, title: str, artist: str) -> Optional[dict]:
        query = f"releasegroup:{_lucene_phrase(title)} AND artist:{_lucene_phrase(artist)}"
        data = await self._get_json(
            f"{self.base_url}/release-group/",
            params={"query": query, "fmt": "json", "limit": 5},
        )
        groups = (data or {}).get("release-groups") or []
        return pick_best_match(groups, lambda g: g.get("title"), title)

    async def get_release_group(self, mbid: str) -> Optional[dict]:
        return await self._get_json(
            f"{self.base_url}/release-group/{mbid}",
            params={"inc": "tags url-rels", "fmt": "json"},
        )

    @provider_call
    async def fetch_artist_data(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ArtistData]]:
        """Search by name (or use the query MBID), then fetch artist details."""
        mbid = query.mbid
        if not mbid:
            found = await self.search_artist(query.name)
            if not found:
                return None
            mbid = found["id"]

        detail = await self.get_artist(mbid)
        if not detail:
            return None

        life_span = detail.get("life-span") or {}
        relations = detail.get("relations") or []
        disambiguation = non_empty(detail.get("disambiguation"))

        data = ArtistData(
            mbid=detail.get("id"),
            type=detail.get("type"),
            origin=(detail.get("area") or {}).get("name"),
            formed=life_span.get("begin"),
            disbanded=life_span.get("end") if life_span.get("ended") else None,
            tags=_top_tags(detail.get("tags"), MAX_ARTIST_TAGS),
            bio=disambiguation,
            bio_summary=disambiguation,
            links=[
                Link(type=r.get("type", "url"), url=r["url"]["resource"])
                for r in relations
                if (r.get("url") or {}).get("resource")
            ]
            or None,
            wiki_url=extract_wikipedia_url(relations),
        )
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def fetch_album_data(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[AlbumData]]:
        """Search the release group (or use the query MBID), then fetch details."""
        mbid = query.mbid
        if not mbid:
            found = await self.search_release_group(query.title, query.artist)
            if not found:
                return None
            mbid = found["id"]

        detail = await self.get_release_group(mbid)
        if not detail:
            return None

        data = AlbumData(
            mbid=detail.get("id"),
            release_type=detail.get("primary-type") or "Album",
            release_date=non_empty(detail.get("first-release-date")),
            genres=_top_tags(detail.get("tags"), MAX_ALBUM_GENRES),
            wiki_url=extract_wikipedia_url(detail.get("relations")),
        )
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def get_artist_mbid(self, name: str, token=None) -> Optional[str]:
        """Resolve an artist MBID for providers keyed by MusicBrainz IDs."""
        found = await self.search_artist(name)
        return found["id"] if found else None

    @provider_call
    async def get_album_mbid(self, title: str, artist: str, token=None) -> Optional[str]:
        """Resolve a release-group MBID for providers keyed by MusicBrainz IDs."""
        found = await self.search_release_group(title, artist)
        return found["id"] if found else None
