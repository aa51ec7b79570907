"""Unit tests for provider adapters over a mocked HTTP transport."""

import httpx
import pytest

from metafuse.config import HTTPConfig
from metafuse.core.cancellation import CancellationToken
from metafuse.models.metadata import AlbumQuery, ArtistQuery, ImageType
from metafuse.models.sources import SOURCES
from metafuse.providers.coverartarchive import CoverArtArchiveProvider
from metafuse.providers.discogs import DiscogsProvider
from metafuse.providers.fanart import FanartProvider, most_liked
from metafuse.providers.itunes import ITunesProvider, find_best_match, resize_artwork
from metafuse.providers.lastfm import LastFmProvider, best_image
from metafuse.providers.musicbrainz import MusicBrainzProvider
from metafuse.providers.theaudiodb import TheAudioDBProvider
from metafuse.providers.wikidata import WikidataProvider, sparql_literal
from metafuse.providers.wikipedia import WikipediaProvider, parse_wikipedia_url

RADIOHEAD_MBID = "a74b1b7f-71a5-4011-9441-d0b5e4122711"
OK_COMPUTER_MBID = "b1392450-e666-3926-a536-22c65f834433"


def routes(table, seen=None):
    """Handler answering by URL path; unknown paths are 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        response = table.get(request.url.path)
        if response is None:
            return httpx.Response(404)
        if callable(response):
            return response(request)
        return response

    return handler


@pytest.fixture
def build(queue_manager, http_config, provider_config, mock_client):
    """Construct an adapter over a handler."""

    def factory(cls, base_url, handler, api_key=None, http=None, **extra):
        return cls(
            provider_config(base_url, api_key),
            queue_manager,
            mock_client(handler),
            http or http_config,
            **extra,
        )

    return factory


MB_SEARCH = {
    "artists": [
        {"id": "other", "name": "Radiohead Tribute"},
        {"id": RADIOHEAD_MBID, "name": "Radiohead"},
    ]
}
MB_ARTIST = {
    "id": RADIOHEAD_MBID,
    "name": "Radiohead",
    "type": "Group",
    "area": {"name": "United Kingdom"},
    "life-span": {"begin": "1985", "ended": False},
    "disambiguation": "English rock band",
    "tags": [
        {"name": "electronic", "count": 5},
        {"name": "alternative rock", "count": 20},
    ],
    "relations": [
        {"type": "official homepage", "url": {"resource": "https://www.radiohead.com"}},
        {"type": "wikipedia", "url": {"resource": "https://en.wikipedia.org/wiki/Radiohead"}},
    ],
}


class TestMusicBrainz:
    """Test MusicBrainzProvider."""

    @pytest.mark.asyncio
    async def test_artist_search_then_detail(self, build):
        """Exact-name match is picked and mapped to ArtistData."""
        provider = build(
            MusicBrainzProvider,
            "https://mb.test/ws/2",
            routes(
                {
                    "/ws/2/artist/": httpx.Response(200, json=MB_SEARCH),
                    f"/ws/2/artist/{RADIOHEAD_MBID}": httpx.Response(200, json=MB_ARTIST),
                }
            ),
        )

        result = await provider.fetch_artist_data(ArtistQuery("Radiohead"))

        assert result.source == SOURCES.MUSICBRAINZ
        assert result.data.mbid == RADIOHEAD_MBID
        assert result.data.tags == ["alternative rock", "electronic"]
        assert result.data.origin == "United Kingdom"
        assert result.data.disbanded is None
        assert result.data.wiki_url == "https://en.wikipedia.org/wiki/Radiohead"

    @pytest.mark.asyncio
    async def test_mbid_skips_search(self, build):
        """A query MBID goes straight to the detail endpoint."""
        seen = []
        provider = build(
            MusicBrainzProvider,
            "https://mb.test/ws/2",
            routes({f"/ws/2/artist/{RADIOHEAD_MBID}": httpx.Response(200, json=MB_ARTIST)}, seen),
        )

        result = await provider.fetch_artist_data(ArtistQuery("Radiohead", mbid=RADIOHEAD_MBID))

        assert result is not None
        assert [r.url.path for r in seen] == [f"/ws/2/artist/{RADIOHEAD_MBID}"]

    @pytest.mark.asyncio
    async def test_sends_user_agent(self, build):
        """Every request identifies the client."""
        seen = []
        provider = build(MusicBrainzProvider, "https://mb.test/ws/2", routes({}, seen))

        await provider.fetch_artist_data(ArtistQuery("Radiohead"))

        assert seen[0].headers["User-Agent"].startswith("MetaFuse/")

    @pytest.mark.asyncio
    async def test_not_found_is_none(self, build):
        """404 means no result."""
        provider = build(MusicBrainzProvider, "https://mb.test/ws/2", routes({}))

        assert await provider.fetch_artist_data(ArtistQuery("Nobody")) is None

    @pytest.mark.asyncio
    async def test_server_error_is_none(self, build):
        """HTTP errors never escape the adapter."""
        seen = []
        provider = build(
            MusicBrainzProvider,
            "https://mb.test/ws/2",
            routes({"/ws/2/artist/": httpx.Response(500)}, seen),
        )

        assert await provider.fetch_artist_data(ArtistQuery("Radiohead")) is None
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self, build):
        """A 503 is retried and the second attempt succeeds."""
        responses = iter([httpx.Response(503), httpx.Response(200, json=MB_SEARCH)])
        provider = build(
            MusicBrainzProvider,
            "https://mb.test/ws/2",
            routes({"/ws/2/artist/": lambda request: next(responses)}),
            http=HTTPConfig(retry_attempts=2, retry_max_wait_seconds=0.5),
        )

        assert await provider.get_artist_mbid("Radiohead") == RADIOHEAD_MBID

    @pytest.mark.asyncio
    async def test_malformed_json_is_none(self, build):
        """Undecodable bodies are provider errors, reported as no result."""
        provider = build(
            MusicBrainzProvider,
            "https://mb.test/ws/2",
            routes({"/ws/2/artist/": httpx.Response(200, content=b"<html>")}),
        )

        assert await provider.fetch_artist_data(ArtistQuery("Radiohead")) is None

    @pytest.mark.asyncio
    async def test_cancelled_token_sends_nothing(self, build):
        """A cancelled call never reaches the network."""
        seen = []
        provider = build(MusicBrainzProvider, "https://mb.test/ws/2", routes({}, seen))
        token = CancellationToken()
        token.cancel()

        assert await provider.fetch_artist_data(ArtistQuery("Radiohead"), token=token) is None
        assert seen == []

    @pytest.mark.asyncio
    async def test_release_group(self, build):
        """Album lookups map release groups."""
        provider = build(
            MusicBrainzProvider,
            "https://mb.test/ws/2",
            routes(
                {
                    "/ws/2/release-group/": httpx.Response(
                        200, json={"release-groups": [{"id": OK_COMPUTER_MBID, "title": "OK Computer"}]}
                    ),
                    f"/ws/2/release-group/{OK_COMPUTER_MBID}": httpx.Response(
                        200,
                        json={
                            "id": OK_COMPUTER_MBID,
                            "primary-type": "Album",
                            "first-release-date": "1997-05-21",
                            "tags": [{"name": "art rock", "count": 3}],
                        },
                    ),
                }
            ),
        )

        result = await provider.fetch_album_data(AlbumQuery("OK Computer", "Radiohead"))

        assert result.data.release_date == "1997-05-21"
        assert result.data.genres == ["art rock"]


class TestLastFm:
    """Test LastFmProvider."""

    @pytest.mark.asyncio
    async def test_requires_api_key(self, build):
        """Without a key no request is made."""
        seen = []
        provider = build(LastFmProvider, "https://fm.test/2.0", routes({}, seen))

        assert await provider.fetch_artist_data(ArtistQuery("Radiohead")) is None
        assert await provider.fetch_similar_artists("Radiohead") == []
        assert seen == []

    @pytest.mark.asyncio
    async def test_artist_bio_is_cleaned(self, build):
        """HTML and the trailing read-more link are stripped."""
        payload = {
            "artist": {
                "name": "Radiohead",
                "url": "https://www.last.fm/music/Radiohead",
                "bio": {
                    "content": 'Radiohead are an <b>English</b> band. <a href="x">Read more on Last.fm</a>',
                    "summary": "Radiohead are an English band.",
                },
                "tags": {"tag": [{"name": "alternative"}, {"name": "rock"}]},
                "similar": {"artist": {"name": "Thom Yorke"}},
            }
        }
        provider = build(
            LastFmProvider,
            "https://fm.test/2.0",
            routes({"/2.0/": httpx.Response(200, json=payload)}),
            api_key="key",
        )

        result = await provider.fetch_artist_data(ArtistQuery("Radiohead"))

        assert result.data.bio == "Radiohead are an English band."
        assert result.data.tags == ["alternative", "rock"]
        assert [a.name for a in result.data.similar_artists] == ["Thom Yorke"]

    @pytest.mark.asyncio
    async def test_error_payload_is_none(self, build):
        """Last.fm reports unknown artists as an error body with status 200."""
        provider = build(
            LastFmProvider,
            "https://fm.test/2.0",
            routes({"/2.0/": httpx.Response(200, json={"error": 6, "message": "not found"})}),
            api_key="key",
        )

        assert await provider.fetch_artist_data(ArtistQuery("Nobody")) is None

    def test_best_image_prefers_largest(self):
        """The largest non-blank size wins."""
        images = [
            {"size": "small", "#text": "s.png"},
            {"size": "extralarge", "#text": "xl.png"},
            {"size": "mega", "#text": ""},
        ]

        assert best_image(images) == "xl.png"


class TestDiscogs:
    """Test DiscogsProvider."""

    @pytest.mark.asyncio
    async def test_artist_image_prefers_primary(self, build):
        """The primary image beats secondary ones; the token is sent."""
        seen = []
        provider = build(
            DiscogsProvider,
            "https://dc.test",
            routes(
                {
                    "/database/search": httpx.Response(
                        200, json={"results": [{"id": 3840, "title": "Radiohead"}]}
                    ),
                    "/artists/3840": httpx.Response(
                        200,
                        json={
                            "images": [
                                {"type": "secondary", "uri": "https://img/2.jpg"},
                                {"type": "primary", "uri": "https://img/1.jpg", "width": 600},
                            ]
                        },
                    ),
                },
                seen,
            ),
            api_key="tok",
        )

        result = await provider.fetch_artist_image(ArtistQuery("Radiohead"))

        assert result.data.url == "https://img/1.jpg"
        assert result.data.width == 600
        assert seen[0].headers["Authorization"] == "Discogs token=tok"

    @pytest.mark.asyncio
    async def test_master_tracklist_durations(self, build):
        """Track durations in m:ss become seconds."""
        provider = build(
            DiscogsProvider,
            "https://dc.test",
            routes(
                {
                    "/database/search": httpx.Response(
                        200, json={"results": [{"id": 21491, "title": "Radiohead - OK Computer"}]}
                    ),
                    "/masters/21491": httpx.Response(
                        200,
                        json={
                            "year": 1997,
                            "genres": ["Electronic", "Rock"],
                            "styles": ["Alternative Rock"],
                            "tracklist": [
                                {"position": "1", "title": "Airbag", "duration": "4:44"},
                                {"position": "2", "title": "Paranoid Android", "duration": ""},
                            ],
                        },
                    ),
                }
            ),
        )

        result = await provider.fetch_album_data(AlbumQuery("OK Computer", "Radiohead"))

        assert result.data.release_date == "1997"
        assert result.data.tags == ["Alternative Rock"]
        assert [t.duration for t in result.data.tracklist] == [284, None]


class TestTheAudioDB:
    """Test TheAudioDBProvider."""

    @pytest.mark.asyncio
    async def test_album_rating_scaled(self, build):
        """Scores are divided by ten and the API key is part of the path."""
        provider = build(
            TheAudioDBProvider,
            "https://adb.test/api/v1/json",
            routes(
                {
                    "/api/v1/json/2/searchalbum.php": httpx.Response(
                        200,
                        json={
                            "album": [
                                {
                                    "strAlbum": "OK Computer",
                                    "intScore": "9.5",
                                    "intScoreVotes": "12",
                                    "strDescriptionEN": "Third album.",
                                    "strAlbumThumb": "https://img/ok.jpg",
                                }
                            ]
                        },
                    )
                }
            ),
            api_key="2",
        )

        result = await provider.fetch_album_data(AlbumQuery("OK Computer", "Radiohead"))

        assert result.data.rating == pytest.approx(0.95)
        assert result.data.rating_count == 12
        assert result.data.description == "Third album."

    @pytest.mark.asyncio
    async def test_artist_image_falls_back_to_fanart(self, build):
        """Without a thumb the first fanart image is used."""
        provider = build(
            TheAudioDBProvider,
            "https://adb.test/api/v1/json",
            routes(
                {
                    "/api/v1/json/2/search.php": httpx.Response(
                        200,
                        json={
                            "artists": [
                                {"strArtist": "Radiohead", "strArtistThumb": "", "strArtistFanart": "https://img/f.jpg"}
                            ]
                        },
                    )
                }
            ),
            api_key="2",
        )

        result = await provider.fetch_artist_image(ArtistQuery("Radiohead"))

        assert result.data.url == "https://img/f.jpg"
        assert result.data.type is ImageType.FANART

    @pytest.mark.asyncio
    async def test_null_artists_is_none(self, build):
        """TheAudioDB answers misses with a null list."""
        provider = build(
            TheAudioDBProvider,
            "https://adb.test/api/v1/json",
            routes({"/api/v1/json/2/search.php": httpx.Response(200, json={"artists": None})}),
        )

        assert await provider.fetch_artist_background(ArtistQuery("Nobody")) is None


class TestWikidata:
    """Test WikidataProvider."""

    @pytest.mark.asyncio
    async def test_group_then_solo(self, build):
        """An empty group query falls back to the solo musician query."""
        queries = []

        def sparql(request):
            query = request.url.params["query"]
            queries.append(query)
            if "Q215380" in query:
                return httpx.Response(200, json={"results": {"bindings": []}})
            return httpx.Response(
                200,
                json={
                    "results": {
                        "bindings": [
                            {
                                "description": {"value": "English musician"},
                                "birthDate": {"value": "1968-10-07T00:00:00Z"},
                                "genreLabel": {"value": "art rock"},
                            },
                            {"genreLabel": {"value": "art rock"}},
                            {"genreLabel": {"value": "electronic"}},
                        ]
                    }
                },
            )

        provider = build(WikidataProvider, "https://wd.test/sparql", routes({"/sparql": sparql}))

        result = await provider.fetch_artist_data(ArtistQuery("Thom Yorke"))

        assert len(queries) == 2
        assert result.data.type == "Person"
        assert result.data.formed == "1968-10-07"
        assert result.data.genres == ["art rock", "electronic"]

    def test_sparql_literal_escapes_quotes(self):
        assert sparql_literal('Say "Hi"') == '"Say \\"Hi\\""'


class TestWikipedia:
    """Test WikipediaProvider."""

    def test_parse_url(self):
        assert parse_wikipedia_url("https://de.wikipedia.org/wiki/Bj%C3%B6rk") == ("de", "Björk")
        assert parse_wikipedia_url("https://example.com/wiki/x") is None

    @pytest.mark.asyncio
    async def test_bio_from_url(self, build):
        """The language in the URL selects the wiki."""
        seen = []
        extract = "Radiohead are an English rock band. They formed in 1985. They are famous. Really."
        provider = build(
            WikipediaProvider,
            "https://{lang}.wiki.test",
            routes(
                {
                    "/api/rest_v1/page/summary/Radiohead": httpx.Response(
                        200, json={"extract": extract}
                    )
                },
                seen,
            ),
        )

        result = await provider.fetch_bio_from_url("https://en.wikipedia.org/wiki/Radiohead")

        assert seen[0].url.host == "en.wiki.test"
        assert result.data.bio == extract
        assert result.data.bio_summary == "Radiohead are an English rock band. They formed in 1985. They are famous."
        assert result.source == SOURCES.WIKIPEDIA

    @pytest.mark.asyncio
    async def test_artist_bio_tries_suffixes(self, build):
        """Short extracts are skipped until a long enough article is found."""
        terms = []
        long_extract = "Muse are an English rock band from Teignmouth, Devon, formed in 1994. " * 2

        def opensearch(request):
            term = request.url.params["search"]
            terms.append(term)
            title = "Muse (band)" if term == "Muse (band)" else "Muse"
            return httpx.Response(200, json=[term, [title], [""], [""]])

        def summary(request):
            return httpx.Response(200, json={"extract": "Muse may refer to:"})

        provider = build(
            WikipediaProvider,
            "https://{lang}.wiki.test",
            routes(
                {
                    "/w/api.php": opensearch,
                    "/api/rest_v1/page/summary/Muse (band)": summary,
                    "/api/rest_v1/page/summary/Muse": httpx.Response(200, json={"extract": long_extract}),
                }
            ),
        )

        result = await provider.fetch_artist_bio("Muse")

        assert terms[0] == "Muse (band)"
        assert result.data.bio == long_extract


class TestCoverArtArchive:
    """Test CoverArtArchiveProvider."""

    @pytest.mark.asyncio
    async def test_release_fallback_and_front_500(self, build):
        """A missing release group falls back to the release listing."""
        listing = {
            "images": [
                {"front": False, "image": "https://caa/back.jpg", "thumbnails": {}},
                {
                    "front": True,
                    "image": "https://caa/front.jpg",
                    "thumbnails": {"500": "https://caa/front-500.jpg", "1200": "https://caa/front-1200.jpg"},
                },
            ]
        }
        handler = routes({f"/release/{OK_COMPUTER_MBID}": httpx.Response(200, json=listing)})
        musicbrainz = build(MusicBrainzProvider, "https://mb.test/ws/2", routes({}))
        provider = build(CoverArtArchiveProvider, "https://caa.test", handler, musicbrainz=musicbrainz)
        query = AlbumQuery("OK Computer", "Radiohead", mbid=OK_COMPUTER_MBID)

        result = await provider.fetch_album_cover(query)
        hires = await provider.fetch_album_cover_hires(query)

        assert result.data.url == "https://caa/front-500.jpg"
        assert result.data.width == 500
        assert result.data.type is ImageType.COVER
        assert hires.data.url == "https://caa/front-1200.jpg"

    @pytest.mark.asyncio
    async def test_dimensions_follow_chosen_image(self, build):
        """Reported size matches the thumbnail actually used; originals have no size."""
        listings = {
            "a": {"images": [{"front": True, "image": "https://caa/a.jpg", "thumbnails": {"1200": "https://caa/a-1200.jpg"}}]},
            "b": {"images": [{"front": True, "image": "https://caa/b.jpg", "thumbnails": {}}]},
        }
        handler = routes(
            {f"/release-group/{mbid}": httpx.Response(200, json=body) for mbid, body in listings.items()}
        )
        musicbrainz = build(MusicBrainzProvider, "https://mb.test/ws/2", routes({}))
        provider = build(CoverArtArchiveProvider, "https://caa.test", handler, musicbrainz=musicbrainz)

        fallback = await provider.fetch_album_cover(AlbumQuery("A", "X", mbid="a"))
        original = await provider.fetch_album_cover(AlbumQuery("B", "X", mbid="b"))
        original_hires = await provider.fetch_album_cover_hires(AlbumQuery("B", "X", mbid="b"))

        assert fallback.data.url == "https://caa/a-1200.jpg"
        assert fallback.data.width == 1200
        assert original.data.url == "https://caa/b.jpg"
        assert original.data.width is None
        assert original_hires.data.height is None

    @pytest.mark.asyncio
    async def test_no_mbid_is_none(self, build):
        """Without a resolvable MBID the archive is not queried."""
        seen = []
        musicbrainz = build(MusicBrainzProvider, "https://mb.test/ws/2", routes({}))
        provider = build(
            CoverArtArchiveProvider, "https://caa.test", routes({}, seen), musicbrainz=musicbrainz
        )

        assert await provider.fetch_album_cover(AlbumQuery("Unknown", "Nobody")) is None
        assert seen == []

    def test_direct_url(self, build):
        provider = build(
            CoverArtArchiveProvider, "https://caa.test", routes({}), musicbrainz=None
        )
        assert provider.direct_cover_url("abc", 250) == "https://caa.test/release-group/abc/front-250"


class TestFanart:
    """Test FanartProvider."""

    def test_most_liked(self):
        images = [{"url": "a", "likes": "2"}, {"url": "b", "likes": "10"}, {"url": "c", "likes": "x"}]
        assert most_liked(images)["url"] == "b"

    @pytest.mark.asyncio
    async def test_thumb_then_background(self, build):
        """Artist image falls back to a background when no thumb exists."""
        payload = {"artistbackground": [{"url": "https://fa/bg.jpg", "likes": "3"}]}
        musicbrainz = build(MusicBrainzProvider, "https://mb.test/ws/2", routes({}))
        provider = build(
            FanartProvider,
            "https://fa.test/v3/music",
            routes({f"/v3/music/{RADIOHEAD_MBID}": httpx.Response(200, json=payload)}),
            api_key="key",
            musicbrainz=musicbrainz,
        )
        query = ArtistQuery("Radiohead", mbid=RADIOHEAD_MBID)

        image = await provider.fetch_artist_image(query)
        logo = await provider.fetch_artist_logo(query)

        assert image.data.type is ImageType.FANART
        assert image.data.url == "https://fa/bg.jpg"
        assert logo is None


class TestITunes:
    """Test ITunesProvider."""

    def test_scoring_picks_exact_match(self):
        """Exact title and artist outrank earlier partial matches."""
        results = [
            {"collectionName": "OK Computer OKNOTOK 1997 2017", "artistName": "Radiohead"},
            {"collectionName": "OK Computer", "artistName": "Radiohead"},
        ]

        assert find_best_match(results, "OK Computer", "Radiohead") is results[1]

    def test_low_scores_fall_back_to_first(self):
        results = [{"collectionName": "Zzz", "artistName": "Yyy"}, {"collectionName": "Aaa"}]
        assert find_best_match(results, "OK Computer", "Radiohead") is results[0]

    def test_resize_artwork(self):
        url = "https://is1.mzstatic.com/image/100x100bb.jpg"
        assert resize_artwork(url, 1200) == "https://is1.mzstatic.com/image/1200x1200bb.jpg"

    @pytest.mark.asyncio
    async def test_album_cover(self, build):
        provider = build(
            ITunesProvider,
            "https://it.test",
            routes(
                {
                    "/search": httpx.Response(
                        200,
                        json={
                            "results": [
                                {
                                    "collectionName": "OK Computer",
                                    "artistName": "Radiohead",
                                    "artworkUrl100": "https://it/100x100bb.jpg",
                                }
                            ]
                        },
                    )
                }
            ),
        )

        result = await provider.fetch_album_cover(AlbumQuery("OK Computer", "Radiohead"))

        assert result.data.url == "https://it/600x600bb.jpg"
        assert result.data.width == 600
        assert result.source == SOURCES.ITUNES
