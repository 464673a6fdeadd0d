"""
Persistent verification cache with tiered time-to-live.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Callable, Optional

import aiosqlite

from evidence_integrity.models import (
    CacheQueryType,
    CacheStats,
    VerificationQuery,
    VerificationResult,
)
from evidence_integrity.search.identifiers import doi_key

logger = logging.getLogger(__name__)

DOI_TTL_SECONDS = 7 * 24 * 60 * 60
SEARCH_TTL_SECONDS = 60 * 60


def fingerprint_query(query: VerificationQuery) -> str:
    """
    Stable cache key for a query.

    Title and authors are case-folded and trimmed, authors sorted, the DOI
    normalised; URL is not part of the key.
    """
    normalized = {
        "doi": doi_key(query.doi),
        "title": query.title.strip().lower() if query.title else None,
        "authors": sorted(a.strip().lower() for a in query.authors) if query.authors else None,
        "year": query.year,
        "venue": query.venue.strip().lower() if query.venue else None,
    }
    key_string = json.dumps(normalized, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(key_string.encode("utf-8")).hexdigest()


class VerificationCache:
    """
    Persistent cache for verification results using SQLite.

    DOI lookups are stable and live for a week; free-text search results can
    change as providers index new works and live for an hour.
    """

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        doi_ttl_seconds: int = DOI_TTL_SECONDS,
        search_ttl_seconds: int = SEARCH_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize verification cache.

        Args:
            cache_dir: Directory for cache database (default: data/cache)
            doi_ttl_seconds: TTL for entries produced by a DOI lookup
            search_ttl_seconds: TTL for entries produced by a search
            clock: Wall-clock source in epoch seconds
        """
        if cache_dir is None:
            cache_dir = "data/cache"

        self.cache_dir = Path(cache_dir)
        self.db_path = self.cache_dir / "verification_cache.db"
        self.ttl_seconds = {
            CacheQueryType.DOI: doi_ttl_seconds,
            CacheQueryType.SEARCH: search_ttl_seconds,
        }
        self._clock = clock
        self._initialized = False

    async def initialize(self) -> int:
        """
        Create the cache table if needed and drop expired entries.

        Returns:
            Number of expired entries evicted
        """
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("PRAGMA journal_mode = WAL")
            await db.execute("""
                CREATE TABLE IF NOT EXISTS verification_cache (
                    query_hash TEXT PRIMARY KEY,
                    query_type TEXT NOT NULL,
                    result TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    expires_at REAL NOT NULL
                )
            """)
            await db.execute(
                "CREATE INDEX IF NOT EXISTS idx_cache_expires_at ON verification_cache(expires_at)"
            )
            await db.commit()
        self._initialized = True
        return await self.evict_expired()

    async def _ensure_initialized(self) -> None:
        if not self._initialized:
            await self.initialize()

    async def get(self, query: VerificationQuery) -> Optional[VerificationResult]:
        """
        Get the cached result for a query.

        Returns:
            The stored result if present and not expired, None otherwise
        """
        await self._ensure_initialized()
        query_hash = fingerprint_query(query)
        now = self._clock()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT result FROM verification_cache
                WHERE query_hash = ? AND expires_at > ?
                """,
                (query_hash, now),
            )
            row = await cursor.fetchone()

        if row is None:
            logger.debug(f"Cache miss for {query_hash[:12]}")
            return None

        try:
            result = VerificationResult.model_validate_json(row[0])
        except ValueError as exc:
            logger.warning(f"Discarding unreadable cache entry {query_hash[:12]}: {exc}")
            return None
        logger.debug(f"Cache hit for {query_hash[:12]}")
        return result

    async def put(
        self,
        query: VerificationQuery,
        result: VerificationResult,
        query_type: CacheQueryType,
    ) -> None:
        """
        Insert or overwrite the entry for a query.

        Args:
            query: Query the result answers
            result: Result to store
            query_type: Decides the TTL tier
        """
        await self._ensure_initialized()
        query_type = CacheQueryType(query_type)
        query_hash = fingerprint_query(query)
        now = self._clock()
        expires_at = now + self.ttl_seconds[query_type]
        stored = result.model_copy(update={"from_cache": False})

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO verification_cache (query_hash, query_type, result, created_at, expires_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(query_hash) DO UPDATE SET
                    query_type = excluded.query_type,
                    result = excluded.result,
                    created_at = excluded.created_at,
                    expires_at = excluded.expires_at
                """,
                (query_hash, query_type.value, stored.model_dump_json(), now, expires_at),
            )
            await db.commit()

        logger.debug(f"Cached {query_type.value} result for {query_hash[:12]} ({result.status.value})")

    async def evict_expired(self) -> int:
        """Remove expired cache entries."""
        await self._ensure_initialized()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM verification_cache WHERE expires_at <= ?", (self._clock(),)
            )
            deleted = cursor.rowcount
            await db.commit()

        if deleted > 0:
            logger.info(f"Cleared {deleted} expired cache entries")
        return max(deleted, 0)

    async def clear(self) -> int:
        """Clear all cache entries."""
        await self._ensure_initialized()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("DELETE FROM verification_cache")
            deleted = cursor.rowcount
            await db.commit()

        logger.info(f"Cleared all {deleted} cache entries")
        return max(deleted, 0)

    async def stats(self) -> CacheStats:
        """
        Get cache statistics.

        Returns:
            Entry counts and on-disk size
        """
        await self._ensure_initialized()
        now = self._clock()
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM verification_cache")
            total = (await cursor.fetchone())[0]
            cursor = await db.execute(
                "SELECT COUNT(*) FROM verification_cache WHERE expires_at <= ?", (now,)
            )
            expired = (await cursor.fetchone())[0]

        size = 0
        for path in (self.db_path, self.db_path.with_name(self.db_path.name + "-wal")):
            if path.exists():
                size += path.stat().st_size

        return CacheStats(
            total_entries=total,
            valid_entries=total - expired,
            expired_entries=expired,
            cache_size_bytes=size,
        )
