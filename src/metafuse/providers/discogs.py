"""Discogs adapter (tier 1, comprehensive database of physical releases)."""

from typing import Optional

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
    Track,
)
from metafuse.models.sources import SOURCES, SourcedResult
from metafuse.providers.base import BaseProvider, pick_best_match, provider_call
from metafuse.utils.text import non_empty, parse_duration, parse_int, summarize


def _primary_image(images: Optional[list]) -> Optional[dict]:
    images = [img for img in images or [] if img.get("uri")]
    if not images:
        return None
    return next((img for img in images if img.get("type") == "primary"), images[0])


class DiscogsProvider(BaseProvider):
    """Discogs database API client.

    Database search requires a personal access token (``api_key``).
    """

    source = SOURCES.DISCOGS
    key = "discogs"

    def _headers(self) -> dict:
        headers = {"Accept": "application/vnd.discogs.v2.discogs+json"}
        if self.api_key:
            headers["Authorization"] = f"Discogs token={self.api_key}"
        return headers

    async def search_artist(self, name: str) -> Optional[dict]:
        data = await self._get_json(
            f"{self.base_url}/database/search",
            params={"q": name, "type": "artist", "per_page": 3},
            headers=self._headers(),
        )
        return pick_best_match((data or {}).get("results") or [], lambda r: r.get("title"), name)

    async def get_artist(self, artist_id: int) -> Optional[dict]:
        return await self._get_json(f"{self.base_url}/artists/{artist_id}", headers=self._headers())

    async def search_master(self, title: str, artist: str) -> Optional[dict]:
        data = await self._get_json(
            f"{self.base_url}/database/search",
            params={"q": f"{artist} {title}", "type": "master", "per_page": 5},
            headers=self._headers(),
        )
        results = (data or {}).get("results") or []
        if not results:
            return None
        # Master titles read "Artist - Title"
        wanted = title.lower()
        return next((r for r in results if wanted in (r.get("title") or "").lower()), results[0])

    async def get_master(self, master_id: int) -> Optional[dict]:
        return await self._get_json(f"{self.base_url}/masters/{master_id}", headers=self._headers())

    async def _find_artist(self, name: str) -> Optional[dict]:
        found = await self.search_artist(name)
        if not found:
            return None
        return await self.get_artist(found["id"])

    async def _find_master(self, query: AlbumQuery) -> Optional[dict]:
        found = await self.search_master(query.title, query.artist)
        if not found:
            return None
        return await self.get_master(found["id"])

    @provider_call
    async def fetch_artist_data(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ArtistData]]:
        artist = await self._find_artist(query.name)
        if not artist:
            return None

        profile = non_empty(artist.get("profile"))
        data = ArtistData(
            bio=profile,
            bio_summary=summarize(profile) if profile else None,
            members=[
                Member(name=m["name"], active=m.get("active"))
                for m in artist.get("members") or []
                if m.get("name")
            ]
            or None,
            links=[Link(type="website", url=url) for url in artist.get("urls") or [] if url] or None,
        )
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def fetch_album_data(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[AlbumData]]:
        release = await self._find_master(query)
        if not release:
            return None

        notes = non_empty(release.get("notes"))
        labels = release.get("labels") or []
        tracklist = [
            Track(
                position=parse_int(t.get("position")) or index,
                title=t.get("title", ""),
                duration=parse_duration(t.get("duration")),
            )
            for index, t in enumerate(release.get("tracklist") or [], start=1)
            if t.get("type_", "track") == "track"
        ]

        data = AlbumData(
            description=notes,
            description_summary=summarize(notes) if notes else None,
            genres=release.get("genres") or None,
            tags=release.get("styles") or None,
            release_date=str(release["year"]) if release.get("year") else None,
            label=labels[0].get("name") if labels else None,
            credits=[
                Credit(role=a.get("role", ""), name=a["name"])
                for a in release.get("extraartists") or []
                if a.get("name")
            ]
            or None,
            tracklist=tracklist or None,
        )
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def fetch_artist_image(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        artist = await self._find_artist(query.name)
        image = _primary_image((artist or {}).get("images"))
        if not image:
            return None
        return SourcedResult(
            data=ImageData(
                url=image["uri"],
                type=ImageType.PRIMARY,
                width=image.get("width"),
                height=image.get("height"),
            ),
            source=self.source,
        )

    @provider_call
    async def fetch_album_cover(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        release = await self._find_master(query)
        image = _primary_image((release or {}).get("images"))
        if not image:
            return None
        return SourcedResult(
            data=ImageData(
                url=image["uri"],
                type=ImageType.COVER,
                width=image.get("width"),
                height=image.get("height"),
            ),
            source=self.source,
        )
