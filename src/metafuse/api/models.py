"""Pydantic models for API responses."""

from dataclasses import asdict
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from metafuse.models.sources import SourcedResult


class SourceModel(BaseModel):
    """Attribution of a result."""

    name: str
    tier: int = Field(..., ge=1, le=4, description="1 = professional, 4 = specialized")
    url: Optional[str] = None


class SourcedResponse(BaseModel):
    """A provider result with its attribution."""

    data: Dict[str, Any]
    source: SourceModel
    fetched_at: float = Field(..., description="Epoch seconds when the provider answered")

    @classmethod
    def from_result(cls, result: SourcedResult) -> "SourcedResponse":
        return cls(
            data=asdict(result.data),
            source=SourceModel(
                name=result.source.name, tier=int(result.source.tier), url=result.source.url
            ),
            fetched_at=result.fetched_at,
        )


class CacheKindStats(BaseModel):
    """Entry counts for one cache kind."""

    total: int
    expired: int
    valid: int


class CacheStatsResponse(BaseModel):
    """Cache statistics response model."""

    kinds: Dict[str, CacheKindStats]


class CacheClearResponse(BaseModel):
    """Cache maintenance response model."""

    status: Literal["ok"] = "ok"
    removed: Optional[int] = None
    message: str


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "degraded"]
    version: str
    uptime_seconds: float
    providers: Dict[str, int] = Field(
        default_factory=dict, description="Providers per lookup chain"
    )
