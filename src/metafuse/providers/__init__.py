"""Provider adapters for external metadata services."""

from dataclasses import dataclass
from typing import Optional

import httpx

from metafuse.config import Config
from metafuse.core.rate_limiter import QueueManager
from metafuse.providers.base import BaseProvider
from metafuse.providers.coverartarchive import CoverArtArchiveProvider
from metafuse.providers.discogs import DiscogsProvider
from metafuse.providers.fanart import FanartProvider
from metafuse.providers.itunes import ITunesProvider
from metafuse.providers.lastfm import LastFmProvider
from metafuse.providers.musicbrainz import MusicBrainzProvider
from metafuse.providers.theaudiodb import TheAudioDBProvider
from metafuse.providers.wikidata import WikidataProvider
from metafuse.providers.wikipedia import WikipediaProvider


@dataclass
class Providers:
    """One adapter per service; ``None`` for services disabled in config."""

    musicbrainz: Optional[MusicBrainzProvider] = None
    discogs: Optional[DiscogsProvider] = None
    lastfm: Optional[LastFmProvider] = None
    theaudiodb: Optional[TheAudioDBProvider] = None
    wikidata: Optional[WikidataProvider] = None
    wikipedia: Optional[WikipediaProvider] = None
    coverartarchive: Optional[CoverArtArchiveProvider] = None
    fanart: Optional[FanartProvider] = None
    itunes: Optional[ITunesProvider] = None


def build_providers(
    config: Config, queue_manager: QueueManager, client: httpx.AsyncClient
) -> Providers:
    """Instantiate every enabled adapter over a shared client and rate limiter.

    Cover Art Archive and Fanart.tv resolve MBIDs through MusicBrainz, so
    they are built even when MusicBrainz itself is disabled as a chain member.
    """
    settings = config.providers

    def make(cls, **extra):
        return cls(getattr(settings, cls.key), queue_manager, client, config.http, **extra)

    musicbrainz = make(MusicBrainzProvider)

    def enabled(cls, **extra):
        if not getattr(settings, cls.key).enabled:
            return None
        return make(cls, **extra)

    return Providers(
        musicbrainz=musicbrainz if settings.musicbrainz.enabled else None,
        discogs=enabled(DiscogsProvider),
        lastfm=enabled(LastFmProvider),
        theaudiodb=enabled(TheAudioDBProvider),
        wikidata=enabled(WikidataProvider),
        wikipedia=enabled(WikipediaProvider),
        coverartarchive=enabled(CoverArtArchiveProvider, musicbrainz=musicbrainz),
        fanart=enabled(FanartProvider, musicbrainz=musicbrainz),
        itunes=enabled(ITunesProvider),
    )


__all__ = [
    "BaseProvider",
    "CoverArtArchiveProvider",
    "DiscogsProvider",
    "FanartProvider",
    "ITunesProvider",
    "LastFmProvider",
    "MusicBrainzProvider",
    "Providers",
    "TheAudioDBProvider",
    "WikidataProvider",
    "WikipediaProvider",
    "build_providers",
]
