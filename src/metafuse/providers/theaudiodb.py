"""TheAudioDB adapter (tier 3, community artwork and metadata)."""

from typing import List, Optional

from metafuse.models.metadata import (
    AlbumData,
    AlbumQuery,
    ArtistData,
    ArtistQuery,
    ImageData,
    ImageType,
    Link,
)
from metafuse.models.sources import SOURCES, SourcedResult
from metafuse.providers.base import BaseProvider, pick_best_match, provider_call
from metafuse.utils.text import non_empty, parse_int, summarize

BIOGRAPHY_FIELDS = ("strBiographyEN", "strBiographyDE", "strBiographyFR")
DESCRIPTION_FIELDS = ("strDescriptionEN", "strDescriptionDE", "strDescriptionFR")


def _first(record: dict, names) -> Optional[str]:
    for name in names:
        value = non_empty(record.get(name))
        if value:
            return value
    return None


def _genres(record: dict) -> List[str]:
    return [v for v in (non_empty(record.get(k)) for k in ("strGenre", "strStyle", "strMood")) if v]


def _website(value: str) -> str:
    return value if value.startswith(("http://", "https://")) else f"https://{value}"


class TheAudioDBProvider(BaseProvider):
    """TheAudioDB v1 JSON API client. The API key is part of the URL path."""

    source = SOURCES.THEAUDIODB
    key = "theaudiodb"

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{self.api_key or '2'}/{endpoint}"

    async def search_artist(self, name: str) -> Optional[dict]:
        data = await self._get_json(self._url("search.php"), params={"s": name})
        return pick_best_match((data or {}).get("artists") or [], lambda a: a.get("strArtist"), name)

    async def search_album(self, query: AlbumQuery) -> Optional[dict]:
        data = await self._get_json(
            self._url("searchalbum.php"), params={"s": query.artist, "a": query.title}
        )
        return pick_best_match((data or {}).get("album") or [], lambda a: a.get("strAlbum"), query.title)

    @provider_call
    async def fetch_artist_data(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ArtistData]]:
        artist = await self.search_artist(query.name)
        if not artist:
            return None

        bio = _first(artist, BIOGRAPHY_FIELDS)
        links = []
        if non_empty(artist.get("strWebsite")):
            links.append(Link(type="website", url=_website(artist["strWebsite"].strip())))
        for field, kind in (("strFacebook", "facebook"), ("strTwitter", "twitter")):
            if non_empty(artist.get(field)):
                links.append(Link(type=kind, url=_website(artist[field].strip())))

        data = ArtistData(
            bio=bio,
            bio_summary=summarize(bio) if bio else None,
            origin=non_empty(artist.get("strCountry")),
            formed=non_empty(artist.get("intFormedYear")) or non_empty(artist.get("intBornYear")),
            disbanded=non_empty(artist.get("strDisbanded")),
            genres=_genres(artist) or None,
            links=links or None,
            mbid=non_empty(artist.get("strMusicBrainzID")),
        )
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def fetch_album_data(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[AlbumData]]:
        album = await self.search_album(query)
        if not album:
            return None

        description = _first(album, DESCRIPTION_FIELDS)
        score = album.get("intScore")

        data = AlbumData(
            description=description,
            description_summary=summarize(description) if description else None,
            genres=_genres(album) or None,
            release_date=non_empty(album.get("intYearReleased")),
            release_type=non_empty(album.get("strReleaseFormat")) or "Album",
            label=non_empty(album.get("strLabel")),
            rating=float(score) / 10 if score else None,
            rating_count=parse_int(album.get("intScoreVotes")),
            mbid=non_empty(album.get("strMusicBrainzID")),
        )
        return SourcedResult(data=data, source=self.source)

    @provider_call
    async def fetch_artist_image(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        artist = await self.search_artist(query.name)
        if not artist:
            return None

        thumb = non_empty(artist.get("strArtistThumb"))
        url = thumb or _first(
            artist,
            (
                "strArtistFanart",
                "strArtistFanart2",
                "strArtistFanart3",
                "strArtistCutout",
                "strArtistLogo",
            ),
        )
        if not url:
            return None
        image_type = ImageType.THUMB if thumb else ImageType.FANART
        return SourcedResult(data=ImageData(url=url, type=image_type), source=self.source)

    @provider_call
    async def fetch_artist_background(
        self, query: ArtistQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        artist = await self.search_artist(query.name)
        if not artist:
            return None

        url = _first(
            artist,
            ("strArtistFanart", "strArtistFanart2", "strArtistFanart3", "strArtistWideThumb"),
        )
        if not url:
            return None
        return SourcedResult(data=ImageData(url=url, type=ImageType.FANART), source=self.source)

    @provider_call
    async def fetch_album_cover(
        self, query: AlbumQuery, token=None
    ) -> Optional[SourcedResult[ImageData]]:
        album = await self.search_album(query)
        if not album:
            return None

        url = _first(album, ("strAlbumThumbHQ", "strAlbumThumb"))
        if not url:
            return None
        return SourcedResult(data=ImageData(url=url, type=ImageType.COVER), source=self.source)
