"""API routes for metadata lookups and cache maintenance."""

import time
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from metafuse import __version__
from metafuse.api.models import (
    CacheClearResponse,
    CacheStatsResponse,
    HealthResponse,
    SourcedResponse,
)
from metafuse.core.cancellation import CancellationToken
from metafuse.models.metadata import AlbumQuery, ArtistQuery
from metafuse.models.sources import SourcedResult
from metafuse.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


async def _lookup(request: Request, method: str, query) -> Optional[SourcedResult]:
    """Run one aggregator lookup, cancelled after the configured request timeout."""
    token = CancellationToken()
    timeout = request.app.state.metafuse.config.api.request_timeout_seconds
    if timeout:
        token.cancel_after(timeout)
    try:
        return await getattr(request.app.state.metafuse.aggregator, method)(query, token=token)
    finally:
        token.dispose()


def _respond(result: Optional[SourcedResult], what: str) -> SourcedResponse:
    if result is None:
        raise HTTPException(status_code=404, detail=f"No {what} found")
    return SourcedResponse.from_result(result)


@router.get("/artist/info", response_model=SourcedResponse)
async def artist_info(
    request: Request,
    name: str = Query(..., min_length=1),
    mbid: Optional[str] = None,
):
    """Artist biography and facts from the most credible provider.

    Args:
        request: FastAPI request
        name: Artist name
        mbid: Optional MusicBrainz artist ID

    Returns:
        Sourced artist data, or 404 when no provider knows the artist
    """
    result = await _lookup(request, "fetch_artist_info", ArtistQuery(name=name, mbid=mbid))
    return _respond(result, "artist info")


@router.get("/artist/image", response_model=SourcedResponse)
async def artist_image(request: Request, name: str = Query(..., min_length=1), mbid: Optional[str] = None):
    """Artist photo."""
    result = await _lookup(request, "fetch_artist_image", ArtistQuery(name=name, mbid=mbid))
    return _respond(result, "artist image")


@router.get("/artist/background", response_model=SourcedResponse)
async def artist_background(
    request: Request, name: str = Query(..., min_length=1), mbid: Optional[str] = None
):
    """Wide artist background artwork."""
    result = await _lookup(request, "fetch_artist_background", ArtistQuery(name=name, mbid=mbid))
    return _respond(result, "artist background")


@router.get("/album/info", response_model=SourcedResponse)
async def album_info(
    request: Request,
    title: str = Query(..., min_length=1),
    artist: str = Query(..., min_length=1),
    mbid: Optional[str] = None,
):
    """Album description, release facts and credits.

    Args:
        request: FastAPI request
        title: Album title
        artist: Album artist
        mbid: Optional MusicBrainz release-group ID

    Returns:
        Sourced album data, or 404 when no provider knows the album
    """
    result = await _lookup(
        request, "fetch_album_info", AlbumQuery(title=title, artist=artist, mbid=mbid)
    )
    return _respond(result, "album info")


@router.get("/album/cover", response_model=SourcedResponse)
async def album_cover(
    request: Request,
    title: str = Query(..., min_length=1),
    artist: str = Query(..., min_length=1),
    mbid: Optional[str] = None,
):
    """Album front cover."""
    result = await _lookup(
        request, "fetch_album_cover", AlbumQuery(title=title, artist=artist, mbid=mbid)
    )
    return _respond(result, "album cover")


@router.post("/cache/clear", response_model=CacheClearResponse)
async def clear_cache(request: Request):
    """Drop every cached result."""
    request.app.state.metafuse.aggregator.clear_all_caches()
    logger.info("Cache cleared via API")
    return CacheClearResponse(message="All caches cleared")


@router.post("/cache/clear-expired", response_model=CacheClearResponse)
async def clear_expired_cache(request: Request):
    """Sweep expired entries from every cache."""
    removed = request.app.state.metafuse.aggregator.clear_expired_cache()
    return CacheClearResponse(removed=removed, message=f"Removed {removed} expired entries")


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(request: Request):
    """Per-kind cache entry counts."""
    return CacheStatsResponse(kinds=request.app.state.metafuse.aggregator.cache_stats())


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint.

    Degraded when any lookup chain has no enabled provider.
    """
    app_state = request.app.state.metafuse
    chains = vars(app_state.aggregator.chains)
    providers = {name: len(chain) for name, chain in chains.items()}

    return HealthResponse(
        status="healthy" if all(providers.values()) else "degraded",
        version=__version__,
        uptime_seconds=time.time() - app_state.start_time,
        providers=providers,
    )
