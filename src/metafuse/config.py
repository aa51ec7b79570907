"""Configuration management for MetaFuse."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from metafuse.exceptions import ConfigurationError


class RateLimitConfig(BaseModel):
    """Per-provider request pacing."""

    requests_per_minute: int = Field(default=60, description="Nominal provider limit")
    min_interval_ms: int = Field(default=1000, description="Minimum spacing between requests")

    @field_validator("min_interval_ms", "requests_per_minute")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        """Reject negative pacing values."""
        if v < 0:
            raise ValueError("Rate limit values must be non-negative")
        return v


DEFAULT_RATE_LIMIT = RateLimitConfig(requests_per_minute=60, min_interval_ms=1000)

DEFAULT_RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "musicbrainz": RateLimitConfig(requests_per_minute=50, min_interval_ms=1100),
    "discogs": RateLimitConfig(requests_per_minute=60, min_interval_ms=1000),
    "lastfm": RateLimitConfig(requests_per_minute=300, min_interval_ms=200),
    "theaudiodb": RateLimitConfig(requests_per_minute=100, min_interval_ms=600),
    "wikidata": RateLimitConfig(requests_per_minute=200, min_interval_ms=300),
    "coverartarchive": RateLimitConfig(requests_per_minute=50, min_interval_ms=1200),
    "fanart": RateLimitConfig(requests_per_minute=100, min_interval_ms=600),
    "itunes": RateLimitConfig(requests_per_minute=200, min_interval_ms=300),
    "wikipedia": RateLimitConfig(requests_per_minute=200, min_interval_ms=300),
}


class ProviderConfig(BaseModel):
    """Connection settings for one external provider."""

    enabled: bool = Field(default=True, description="Include provider in fallback chains")
    base_url: str = Field(..., description="Provider API base URL")
    api_key: Optional[str] = Field(default=None, description="Provider API key")
    timeout_seconds: float = Field(default=10.0, description="Per-request timeout")


def _provider(base_url: str, timeout: float = 10.0, api_key: Optional[str] = None):
    return Field(
        default_factory=lambda: ProviderConfig(
            base_url=base_url, timeout_seconds=timeout, api_key=api_key
        )
    )


class ProvidersConfig(BaseModel):
    """Settings for every provider adapter."""

    musicbrainz: ProviderConfig = _provider("https://musicbrainz.org/ws/2")
    discogs: ProviderConfig = _provider("https://api.discogs.com")
    lastfm: ProviderConfig = _provider("https://ws.audioscrobbler.com/2.0/", timeout=8.0)
    # "2" is TheAudioDB's public test key
    theaudiodb: ProviderConfig = _provider("https://www.theaudiodb.com/api/v1/json", api_key="2")
    wikidata: ProviderConfig = _provider("https://query.wikidata.org/sparql", timeout=15.0)
    wikipedia: ProviderConfig = _provider("https://{lang}.wikipedia.org", timeout=8.0)
    coverartarchive: ProviderConfig = _provider("https://coverartarchive.org")
    fanart: ProviderConfig = _provider("https://webservice.fanart.tv/v3/music")
    itunes: ProviderConfig = _provider("https://itunes.apple.com", timeout=8.0)


class HTTPConfig(BaseModel):
    """Shared HTTP client configuration."""

    user_agent: str = Field(
        default="MetaFuse/0.1.0 (music-metadata-aggregator)",
        description="Descriptive client identifier sent to every provider",
    )
    retry_attempts: int = Field(default=2, description="Attempts per request on transient errors")
    retry_max_wait_seconds: float = Field(default=8.0, description="Upper bound on retry backoff")

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Require at least one attempt."""
        if v < 1:
            raise ValueError("retry_attempts must be at least 1")
        return v


class CacheConfig(BaseModel):
    """Aggregate result cache configuration."""

    info_ttl_days: float = Field(default=7, description="TTL for artist/album info")
    image_ttl_days: float = Field(default=30, description="TTL for images and covers")
    persist_path: Optional[str] = Field(
        default=None, description="SQLite file for a persistent cache (memory only if unset)"
    )


class BatchConfig(BaseModel):
    """Batch enrichment configuration."""

    worker_count: int = Field(default=4, description="Concurrent enrichment workers")
    item_timeout_seconds: Optional[float] = Field(
        default=60.0, description="Cancel an item's lookup after this many seconds"
    )

    @field_validator("worker_count")
    @classmethod
    def validate_worker_count(cls, v: int) -> int:
        """Require at least one worker."""
        if v < 1:
            raise ValueError("worker_count must be at least 1")
        return v


class APIConfig(BaseModel):
    """API server configuration."""

    host: str = Field(default="127.0.0.1", description="API host")
    port: int = Field(default=9494, description="API port")
    request_timeout_seconds: float = Field(
        default=30.0, description="Cancel a lookup after this many seconds"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: str = Field(default="text", description="Log format (json or text)")
    level: str = Field(default="info", description="Log level")
    output: Optional[str] = Field(default=None, description="Optional log file path")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        if v.lower() not in ("debug", "info", "warning", "error", "critical"):
            raise ValueError("Invalid log level")
        return v.lower()


class Config(BaseModel):
    """Main configuration model."""

    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    rate_limits: Dict[str, RateLimitConfig] = Field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMITS),
        description="Per-provider rate limits; unlisted providers use default_rate_limit",
    )
    default_rate_limit: RateLimitConfig = Field(default_factory=lambda: DEFAULT_RATE_LIMIT)
    http: HTTPConfig = Field(default_factory=HTTPConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("rate_limits")
    @classmethod
    def merge_rate_limits(cls, v: Dict[str, RateLimitConfig]) -> Dict[str, RateLimitConfig]:
        """Overlay configured limits on the built-in table."""
        merged = dict(DEFAULT_RATE_LIMITS)
        merged.update(v)
        return merged

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If the file can't be parsed or an env var is missing
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(path) as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if raw_config is None:
            raw_config = {}

        # Substitute environment variables
        raw_config = cls._substitute_env_vars(raw_config)

        return cls(**raw_config)

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """Recursively substitute environment variables in configuration.

        Replaces ${VAR_NAME} with os.environ['VAR_NAME'].

        Args:
            obj: Configuration object (dict, list, str, etc.)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, dict):
            return {key: Config._substitute_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [Config._substitute_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            pattern = r"\$\{([^}]+)\}"

            def replace_var(match):
                var_name = match.group(1)
                value = os.environ.get(var_name)
                if value is None:
                    raise ConfigurationError(
                        f"Environment variable '{var_name}' not found "
                        f"(referenced in configuration)"
                    )
                return value

            return re.sub(pattern, replace_var, obj)
        else:
            return obj

    @classmethod
    def from_defaults(cls) -> "Config":
        """Create configuration with default values."""
        return cls()


def load_config(path: Optional[str | Path] = None) -> Config:
    """Load configuration from file or use defaults.

    Args:
        path: Optional path to configuration file. If None, uses defaults.

    Returns:
        Config instance
    """
    if path is None:
        return Config.from_defaults()

    return Config.from_yaml(path)
