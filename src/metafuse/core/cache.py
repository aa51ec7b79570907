"""TTL caches for aggregated results, one map per entity kind."""

import json
import re
import sqlite3
import time
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Generic, Optional, Tuple, TypeVar

from metafuse.models.metadata import album_from_dict, artist_from_dict, image_from_dict
from metafuse.models.sources import SourceInfo, SourcedResult, SourceTier
from metafuse.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DAY_SECONDS = 24 * 60 * 60

# ASCII unit separator: never part of an artist name or album title
KEY_SEPARATOR = "\x1f"


class CacheKind(str, Enum):
    """Entity kinds with their own cache map."""

    ARTIST_INFO = "artist_info"
    ALBUM_INFO = "album_info"
    ARTIST_IMAGE = "artist_image"
    ARTIST_BACKGROUND = "artist_background"
    ALBUM_COVER = "album_cover"


_DECODERS = {
    CacheKind.ARTIST_INFO: artist_from_dict,
    CacheKind.ALBUM_INFO: album_from_dict,
    CacheKind.ARTIST_IMAGE: image_from_dict,
    CacheKind.ARTIST_BACKGROUND: image_from_dict,
    CacheKind.ALBUM_COVER: image_from_dict,
}


def normalize_key(value: str) -> str:
    """Lower-case, trim and collapse whitespace runs."""
    return re.sub(r"\s+", " ", value.strip().lower())


def album_key(artist: str, title: str) -> str:
    """Composite key for album-level lookups."""
    return f"{normalize_key(artist)}{KEY_SEPARATOR}{normalize_key(title)}"


@dataclass
class CacheEntry(Generic[T]):
    result: SourcedResult[T]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


def encode_result(result: SourcedResult) -> str:
    return json.dumps(
        {
            "data": asdict(result.data),
            "source": {
                "name": result.source.name,
                "tier": int(result.source.tier),
                "url": result.source.url,
            },
            "fetched_at": result.fetched_at,
        }
    )


def decode_result(kind: CacheKind, raw: str) -> SourcedResult:
    """Rebuild a cached result.

    Raises:
        ValueError, KeyError, TypeError: If the stored value is corrupt
    """
    payload = json.loads(raw)
    source = payload["source"]
    return SourcedResult(
        data=_DECODERS[kind](payload["data"]),
        source=SourceInfo(source["name"], SourceTier(source["tier"]), source.get("url")),
        fetched_at=float(payload["fetched_at"]),
    )


class SQLiteCacheStore:
    """SQLite persistence for cache entries, shared by all kinds."""

    def __init__(self, db_path: Path):
        """Initialize store with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._init_db()
        logger.info("Initialized persistent cache", db_path=str(self.db_path))

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    def _init_db(self):
        """Initialize database schema if not exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = self._connect()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cache (
                    kind TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    expires_at REAL NOT NULL,
                    created_at REAL NOT NULL,
                    PRIMARY KEY (kind, key)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_expires ON cache(expires_at)")
            conn.commit()
        finally:
            conn.close()

    def get(self, kind: CacheKind, key: str, now: float) -> Optional[Tuple[str, float]]:
        """Get raw value and expiry if not expired."""
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT value, expires_at FROM cache WHERE kind = ? AND key = ? AND expires_at > ?",
                (kind.value, key, now),
            ).fetchone()
            return (row[0], row[1]) if row else None
        finally:
            conn.close()

    def set(self, kind: CacheKind, key: str, value: str, expires_at: float, now: float):
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT OR REPLACE INTO cache (kind, key, value, expires_at, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (kind.value, key, value, expires_at, now),
            )
            conn.commit()
        finally:
            conn.close()

    def delete(self, kind: CacheKind, key: str):
        conn = self._connect()
        try:
            conn.execute("DELETE FROM cache WHERE kind = ? AND key = ?", (kind.value, key))
            conn.commit()
        finally:
            conn.close()

    def cleanup_expired(self, now: float) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed
        """
        conn = self._connect()
        try:
            cursor = conn.execute("DELETE FROM cache WHERE expires_at <= ?", (now,))
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def clear(self):
        conn = self._connect()
        try:
            conn.execute("DELETE FROM cache")
            conn.commit()
        finally:
            conn.close()


class MetadataCache:
    """In-memory TTL cache with one map per entity kind.

    Expiry is lazy: an expired entry is a miss on read and is dropped then.
    ``clear_expired`` sweeps every map to bound memory. When a persistent
    store is attached, writes go through to it and in-memory misses read
    from it; undecodable rows are deleted and count as misses.
    """

    def __init__(
        self,
        info_ttl_days: float = 7,
        image_ttl_days: float = 30,
        store: Optional[SQLiteCacheStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize cache.

        Args:
            info_ttl_days: TTL for artist and album info
            image_ttl_days: TTL for images and covers
            store: Optional persistent backing store
            clock: Time source (epoch seconds)
        """
        info_ttl = info_ttl_days * DAY_SECONDS
        image_ttl = image_ttl_days * DAY_SECONDS
        self.ttl_seconds: Dict[CacheKind, float] = {
            CacheKind.ARTIST_INFO: info_ttl,
            CacheKind.ALBUM_INFO: info_ttl,
            CacheKind.ARTIST_IMAGE: image_ttl,
            CacheKind.ARTIST_BACKGROUND: image_ttl,
            CacheKind.ALBUM_COVER: image_ttl,
        }
        self.store = store
        self.clock = clock
        self._maps: Dict[CacheKind, Dict[str, CacheEntry]] = {kind: {} for kind in CacheKind}

    def get(self, kind: CacheKind, key: str) -> Optional[SourcedResult]:
        """Get a cached result if present and not expired.

        Args:
            kind: Entity kind
            key: Normalized query key

        Returns:
            Cached result, or None on miss
        """
        now = self.clock()
        entries = self._maps[kind]
        entry = entries.get(key)
        if entry is not None:
            if not entry.is_expired(now):
                logger.debug("Cache hit", kind=kind.value, key=key)
                return entry.result
            del entries[key]

        if self.store is not None:
            result = self._load(kind, key, now)
            if result is not None:
                return result

        logger.debug("Cache miss", kind=kind.value, key=key)
        return None

    def _load(self, kind: CacheKind, key: str, now: float) -> Optional[SourcedResult]:
        try:
            row = self.store.get(kind, key, now)
        except sqlite3.Error as e:
            logger.warning("Persistent cache read failed", kind=kind.value, key=key, error=str(e))
            return None
        if row is None:
            return None

        raw, expires_at = row
        try:
            result = decode_result(kind, raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding corrupt cache entry", kind=kind.value, key=key, error=str(e))
            self.store.delete(kind, key)
            return None

        self._maps[kind][key] = CacheEntry(result=result, expires_at=expires_at)
        logger.debug("Persistent cache hit", kind=kind.value, key=key)
        return result

    def set(self, kind: CacheKind, key: str, result: SourcedResult) -> None:
        """Store a result with the kind's TTL.

        Args:
            kind: Entity kind
            key: Normalized query key
            result: Successful aggregate result (never None)
        """
        now = self.clock()
        expires_at = now + self.ttl_seconds[kind]
        self._maps[kind][key] = CacheEntry(result=result, expires_at=expires_at)

        if self.store is not None:
            try:
                self.store.set(kind, key, encode_result(result), expires_at, now)
            except sqlite3.Error as e:
                logger.warning("Persistent cache write failed", kind=kind.value, key=key, error=str(e))

        logger.debug("Cached result", kind=kind.value, key=key, source=result.source.name)

    def clear(self) -> None:
        """Clear all cache entries."""
        for entries in self._maps.values():
            entries.clear()
        if self.store is not None:
            try:
                self.store.clear()
            except sqlite3.Error as e:
                logger.warning("Persistent cache clear failed", error=str(e))
        logger.info("Cache cleared")

    def clear_expired(self) -> int:
        """Remove expired entries from every map.

        Returns:
            Number of in-memory entries removed
        """
        now = self.clock()
        removed = 0
        for entries in self._maps.values():
            expired = [key for key, entry in entries.items() if entry.is_expired(now)]
            for key in expired:
                del entries[key]
            removed += len(expired)

        if self.store is not None:
            try:
                self.store.cleanup_expired(now)
            except sqlite3.Error as e:
                logger.warning("Persistent cache cleanup failed", error=str(e))

        if removed:
            logger.info("Cleaned up expired cache entries", count=removed)
        return removed

    def stats(self) -> dict:
        """Get in-memory cache statistics.

        Returns:
            Per-kind dictionary with total, expired and valid counts
        """
        now = self.clock()
        stats = {}
        for kind, entries in self._maps.items():
            expired = sum(1 for entry in entries.values() if entry.is_expired(now))
            stats[kind.value] = {
                "total": len(entries),
                "expired": expired,
                "valid": len(entries) - expired,
            }
        return stats
