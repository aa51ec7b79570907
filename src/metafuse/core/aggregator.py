"""Metadata aggregation facade.

Each public lookup checks the cache, walks its provider chain in credibility
order, enriches the winner and caches it.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional

import httpx

from metafuse.config import Config
from metafuse.core.cache import CacheKind, MetadataCache, SQLiteCacheStore, album_key, normalize_key
from metafuse.core.cancellation import CancellationToken
from metafuse.core.enrichment import Enricher
from metafuse.core.fallback import named, try_in_order
from metafuse.core.rate_limiter import QueueManager
from metafuse.models.metadata import AlbumData, AlbumQuery, ArtistData, ArtistQuery, ImageData
from metafuse.models.sources import SourcedResult
from metafuse.providers import Providers, build_providers
from metafuse.utils.logger import get_logger

logger = get_logger(__name__)


def _present(*providers) -> List[Any]:
    return [p for p in providers if p is not None]


@dataclass
class ProviderChains:
    """Ordered provider lists, highest priority first, per lookup kind."""

    artist_info: List[Any] = field(default_factory=list)
    album_info: List[Any] = field(default_factory=list)
    artist_image: List[Any] = field(default_factory=list)
    artist_background: List[Any] = field(default_factory=list)
    album_cover: List[Any] = field(default_factory=list)

    @classmethod
    def from_providers(cls, p: Providers) -> "ProviderChains":
        """Default credibility ordering over the enabled adapters."""
        return cls(
            artist_info=_present(p.musicbrainz, p.discogs, p.lastfm, p.theaudiodb, p.wikidata),
            album_info=_present(p.musicbrainz, p.discogs, p.lastfm, p.theaudiodb, p.wikidata),
            artist_image=_present(p.theaudiodb, p.fanart, p.discogs, p.lastfm),
            artist_background=_present(p.fanart, p.theaudiodb),
            album_cover=_present(p.coverartarchive, p.itunes, p.discogs, p.theaudiodb, p.lastfm),
        )


class MetadataAggregator:
    """Single entry point for artist, album and artwork lookups."""

    def __init__(
        self,
        chains: ProviderChains,
        cache: Optional[MetadataCache] = None,
        enricher: Optional[Enricher] = None,
        client: Optional[httpx.AsyncClient] = None,
        queue_manager: Optional[QueueManager] = None,
    ):
        """Initialize aggregator.

        Args:
            chains: Provider chains per lookup kind
            cache: Result cache (a fresh in-memory cache if None)
            enricher: Enrichment passes (none if None)
            client: Shared HTTP client closed by ``aclose``
            queue_manager: Rate limiter, reset by ``aclose``
        """
        self.chains = chains
        self.cache = cache or MetadataCache()
        self.enricher = enricher
        self.client = client
        self.queue_manager = queue_manager

    async def _lookup(
        self,
        kind: CacheKind,
        key: str,
        providers: List[Any],
        method: str,
        query,
        token: Optional[CancellationToken],
        enrich: Optional[Callable] = None,
    ) -> Optional[SourcedResult]:
        cached = self.cache.get(kind, key)
        if cached is not None:
            return cached

        fetchers = [
            named(p.source.name, lambda p=p: getattr(p, method)(query, token=token))
            for p in providers
            if hasattr(p, method)
        ]
        result = await try_in_order(fetchers, token=token, label=f"{kind.value}:{key}")

        if result is not None and enrich is not None:
            result = await enrich(result, query, token)
        if result is not None:
            self.cache.set(kind, key, result)
        return result

    async def fetch_artist_info(
        self, query: ArtistQuery, token: Optional[CancellationToken] = None
    ) -> Optional[SourcedResult[ArtistData]]:
        """Artist biography and facts.

        Order: MusicBrainz, Discogs, Last.fm, TheAudioDB, Wikidata. A thin
        biography is completed from Wikipedia and missing similar artists
        from Last.fm.
        """
        return await self._lookup(
            CacheKind.ARTIST_INFO,
            normalize_key(query.name),
            self.chains.artist_info,
            "fetch_artist_data",
            query,
            token,
            enrich=self.enricher.enrich_artist if self.enricher else None,
        )

    async def fetch_album_info(
        self, query: AlbumQuery, token: Optional[CancellationToken] = None
    ) -> Optional[SourcedResult[AlbumData]]:
        """Album description, release facts and credits.

        Order: MusicBrainz, Discogs, Last.fm, TheAudioDB, Wikidata. A thin
        description is completed from Wikipedia.
        """
        return await self._lookup(
            CacheKind.ALBUM_INFO,
            album_key(query.artist, query.title),
            self.chains.album_info,
            "fetch_album_data",
            query,
            token,
            enrich=self.enricher.enrich_album if self.enricher else None,
        )

    async def fetch_artist_image(
        self, query: ArtistQuery, token: Optional[CancellationToken] = None
    ) -> Optional[SourcedResult[ImageData]]:
        """Artist photo. Order: TheAudioDB, Fanart.tv, Discogs, Last.fm."""
        return await self._lookup(
            CacheKind.ARTIST_IMAGE,
            normalize_key(query.name),
            self.chains.artist_image,
            "fetch_artist_image",
            query,
            token,
        )

    async def fetch_artist_background(
        self, query: ArtistQuery, token: Optional[CancellationToken] = None
    ) -> Optional[SourcedResult[ImageData]]:
        """Wide background artwork. Order: Fanart.tv, TheAudioDB."""
        return await self._lookup(
            CacheKind.ARTIST_BACKGROUND,
            normalize_key(query.name),
            self.chains.artist_background,
            "fetch_artist_background",
            query,
            token,
        )

    async def fetch_album_cover(
        self, query: AlbumQuery, token: Optional[CancellationToken] = None
    ) -> Optional[SourcedResult[ImageData]]:
        """Front cover. Order: Cover Art Archive, iTunes, Discogs, TheAudioDB, Last.fm."""
        return await self._lookup(
            CacheKind.ALBUM_COVER,
            album_key(query.artist, query.title),
            self.chains.album_cover,
            "fetch_album_cover",
            query,
            token,
        )

    def clear_all_caches(self) -> None:
        self.cache.clear()

    def clear_expired_cache(self) -> int:
        return self.cache.clear_expired()

    def cache_stats(self) -> dict:
        return self.cache.stats()

    async def aclose(self) -> None:
        """Stop pending provider requests and close the shared HTTP client."""
        if self.queue_manager is not None:
            self.queue_manager.reset()
        if self.client is not None:
            await self.client.aclose()


def build_aggregator(
    config: Config, client: Optional[httpx.AsyncClient] = None
) -> MetadataAggregator:
    """Wire real adapters, rate limiter, cache and enrichment from config.

    Args:
        config: Application configuration
        client: HTTP client to share (one is created if None)

    Returns:
        Ready-to-use aggregator; call ``aclose`` when done
    """
    client = client or httpx.AsyncClient(follow_redirects=True)
    queue_manager = QueueManager(config.rate_limits, config.default_rate_limit)
    providers = build_providers(config, queue_manager, client)

    store = None
    if config.cache.persist_path:
        store = SQLiteCacheStore(Path(config.cache.persist_path).expanduser())

    cache = MetadataCache(
        info_ttl_days=config.cache.info_ttl_days,
        image_ttl_days=config.cache.image_ttl_days,
        store=store,
    )

    logger.info(
        "Aggregator ready",
        providers=[name for name, p in vars(providers).items() if p is not None],
        persistent_cache=bool(store),
    )

    return MetadataAggregator(
        chains=ProviderChains.from_providers(providers),
        cache=cache,
        enricher=Enricher(wikipedia=providers.wikipedia, lastfm=providers.lastfm),
        client=client,
        queue_manager=queue_manager,
    )
