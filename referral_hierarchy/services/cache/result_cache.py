"""
Result cache.

Thin JSON cache over redis.asyncio. A cache outage never fails a request:
every Redis error is converted to CacheUnavailableError internally and
degraded to a miss or a no-op.
"""

import json
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from referral_hierarchy.config.constants import (
    CACHE_SCAN_COUNT,
    REFERRALS_CACHE_PREFIX,
    SUB_REFERRALS_CACHE_PREFIX,
)
from referral_hierarchy.utils.exceptions import CacheUnavailableError

T = TypeVar("T")


class ResultCache:
    """
    Keyed store for listing responses.

    Concurrent identical misses both recompute; there is no per-key lock.
    """

    def __init__(self, redis_client: Redis | None, ttl_seconds: int) -> None:
        """
        Initialize result cache.

        Args:
            redis_client: Redis client, or None to run without a cache
            ttl_seconds: Default TTL for stored entries
        """
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def listing_key(
        target_ref: str,
        viewer_ref: str,
        scope: str,
        page: int,
        limit: int,
        role: str,
        search: str | None,
        status: str | None,
    ) -> str:
        """Key for a referral listing; starts with the target reference."""
        return (
            f"{REFERRALS_CACHE_PREFIX}:{target_ref}:{viewer_ref}:{scope}:"
            f"{page}:{limit}:{role}:{search or ''}:{status or 'all'}"
        )

    @staticmethod
    def sub_listing_key(
        parent_ref: str, viewer_ref: str, page: int, limit: int, role: str
    ) -> str:
        """Key for a nested sub-listing; starts with the parent reference."""
        return (
            f"{SUB_REFERRALS_CACHE_PREFIX}:{parent_ref}:{viewer_ref}:"
            f"{page}:{limit}:{role}"
        )

    async def _execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run a Redis call, mapping connection failures to CacheUnavailableError."""
        try:
            return await operation()
        except (RedisError, OSError) as e:
            raise CacheUnavailableError(str(e)) from e

    async def get_json(self, key: str) -> dict[str, Any] | None:
        """
        Read a cached JSON document.

        Args:
            key: Cache key

        Returns:
            Decoded document or None on miss, outage or corrupt entry
        """
        if self.redis is None:
            return None

        try:
            raw = await self._execute(lambda: self.redis.get(key))
        except CacheUnavailableError as e:
            logger.warning(f"Cache unavailable on get {key}: {e}")
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Discarding corrupt cache entry: {key}")
            return None

    async def set_json(
        self, key: str, value: dict[str, Any], ttl_seconds: int | None = None
    ) -> None:
        """
        Store a JSON document with a TTL.

        Args:
            key: Cache key
            value: JSON-serialisable document
            ttl_seconds: Override for the default TTL
        """
        if self.redis is None:
            return

        payload = json.dumps(value, default=str)
        ttl = ttl_seconds or self.ttl_seconds
        try:
            await self._execute(lambda: self.redis.set(key, payload, ex=ttl))
        except CacheUnavailableError as e:
            logger.warning(f"Cache unavailable on set {key}: {e}")

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern (SCAN + DEL).

        Best effort: a failure part-way leaves the remaining keys to
        expire through their TTL.

        Args:
            pattern: Redis glob pattern

        Returns:
            Number of keys deleted
        """
        if self.redis is None:
            return 0

        deleted = 0
        cursor = 0
        try:
            while True:
                cursor, keys = await self._execute(
                    lambda: self.redis.scan(
                        cursor=cursor, match=pattern, count=CACHE_SCAN_COUNT
                    )
                )
                if keys:
                    deleted += await self._execute(
                        lambda: self.redis.delete(*keys)
                    )
                if not cursor:
                    break
        except CacheUnavailableError as e:
            logger.warning(f"Cache unavailable on delete {pattern}: {e}")

        return deleted
