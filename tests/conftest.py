"""Shared pytest fixtures for MetaFuse tests."""

from typing import Callable

import httpx
import pytest

from metafuse.config import HTTPConfig, ProviderConfig, RateLimitConfig
from metafuse.core.rate_limiter import QueueManager
from metafuse.models.metadata import AlbumData, ArtistData, ImageData, ImageType
from metafuse.models.sources import SOURCES, SourcedResult


class StubProvider:
    """Provider double exposing only the methods it was given responses for.

    A response may be a value, an exception instance (raised), or a callable
    receiving the positional arguments of the call.
    """

    def __init__(self, source, **responses):
        self.source = source
        self.calls = []
        for method, response in responses.items():
            setattr(self, method, self._make(method, response))

    def _make(self, method, response):
        async def call(*args, token=None, **kwargs):
            self.calls.append(method)
            if isinstance(response, Exception):
                raise response
            if callable(response):
                return response(*args)
            return response

        return call


@pytest.fixture
def queue_manager():
    """Rate limiter with no spacing so provider tests run fast."""
    return QueueManager(rate_limits={}, default=RateLimitConfig(min_interval_ms=0))


@pytest.fixture
def http_config():
    """Single attempt, no retry backoff."""
    return HTTPConfig(retry_attempts=1)


@pytest.fixture
def mock_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an AsyncClient whose requests are answered by a handler."""

    def factory(handler):
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def provider_config():
    """Build a ProviderConfig for a fake endpoint."""

    def factory(base_url: str, api_key=None):
        return ProviderConfig(base_url=base_url, api_key=api_key, timeout_seconds=5)

    return factory


@pytest.fixture
def radiohead_info():
    """Artist info as TheAudioDB would report it."""
    return SourcedResult(
        data=ArtistData(
            bio="Radiohead are an English rock band formed in Abingdon, Oxfordshire, in 1985. "
            "The band consists of Thom Yorke, Jonny Greenwood and Colin Greenwood.",
            tags=["alternative rock"],
            origin="England",
        ),
        source=SOURCES.THEAUDIODB,
    )


@pytest.fixture
def ok_computer_info():
    """Album info with a stub description, as MusicBrainz would report it."""
    return SourcedResult(
        data=AlbumData(
            description="Third studio album by English rock band.",
            release_type="Album",
            release_date="1997-05-21",
            mbid="b1392450-e666-3926-a536-22c65f834433",
        ),
        source=SOURCES.MUSICBRAINZ,
    )


@pytest.fixture
def cover_result():
    """Album cover as Cover Art Archive would report it."""
    return SourcedResult(
        data=ImageData(url="https://coverartarchive.org/release/x/front-500.jpg", type=ImageType.COVER),
        source=SOURCES.COVER_ART_ARCHIVE,
    )


@pytest.fixture
def stub():
    """The StubProvider class, for building provider doubles."""
    return StubProvider
