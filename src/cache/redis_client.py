"""
Redis key-value client.

Provides async Redis operations with:
- Automatic JSON serialization/deserialization
- TTL support
- Atomic set-if-absent (SET NX) for idempotency keys
- Graceful degradation on read/write failures
- Operation statistics
"""

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from src.exceptions import CacheError

logger = logging.getLogger(__name__)


class RedisCache:
    """
    Async Redis client implementing the KeyValueStore interface.

    get/set degrade to a miss/no-op when Redis is unavailable.
    set_if_absent raises CacheError instead: callers must know whether a
    claim succeeded.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0", enabled: bool = True):
        """
        Initialize Redis client.

        Args:
            redis_url: Redis connection URL
            enabled: Whether Redis is used at all (allows runtime disable)
        """
        self.redis_url = redis_url
        self.enabled = enabled
        self._client: Optional[Any] = None
        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "claims": 0,
            "errors": 0,
        }

    async def connect(self):
        """Establish Redis connection."""
        if not self.enabled:
            return

        try:
            self._client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=10,
            )
            await self._client.ping()
            logger.info(f"Redis connected: {self.redis_url}")
        except RedisError as e:
            logger.error(f"Redis connection failed: {e}")
            logger.warning("Redis disabled - idempotency falls back to the XP ledger")
            self.enabled = False
            self._client = None

    async def close(self):
        """Close Redis connection."""
        if self._client:
            try:
                await self._client.aclose()
                logger.info("Redis connection closed")
            except RedisError as e:
                logger.error(f"Error closing Redis connection: {e}")
            self._client = None

    @property
    def available(self) -> bool:
        return self.enabled and self._client is not None

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value.

        Returns:
            Stored value (deserialized from JSON) or None if not found
        """
        if not self.available:
            self._stats["misses"] += 1
            return None

        try:
            value = await self._client.get(key)
            if value is None:
                self._stats["misses"] += 1
                logger.debug(f"Cache MISS: {key}")
                return None

            self._stats["hits"] += 1
            logger.debug(f"Cache HIT: {key}")
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"JSON decode error for key '{key}': {e}")
            self._stats["errors"] += 1
            return None
        except RedisError as e:
            logger.error(f"Redis GET error for key '{key}': {e}")
            self._stats["errors"] += 1
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set value.

        Args:
            key: Key
            value: Value (will be JSON serialized)
            ttl: Time to live in seconds (None = no expiration)

        Returns:
            True if successful, False otherwise
        """
        if not self.available:
            return False

        try:
            serialized = json.dumps(value)

            if ttl:
                await self._client.setex(key, ttl, serialized)
            else:
                await self._client.set(key, serialized)

            self._stats["sets"] += 1
            logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return True
        except (TypeError, ValueError) as e:
            logger.error(f"JSON encode error for key '{key}': {e}")
            self._stats["errors"] += 1
            return False
        except RedisError as e:
            logger.error(f"Redis SET error for key '{key}': {e}")
            self._stats["errors"] += 1
            return False

    async def set_if_absent(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Atomically store value only if key does not exist (SET NX).

        Returns:
            True if this call stored the value, False if the key existed

        Raises:
            CacheError: Redis is unavailable or the command failed
        """
        if not self.available:
            raise CacheError("Redis is not connected", key=key, operation="set_if_absent")

        try:
            stored = await self._client.set(key, json.dumps(value), nx=True, ex=ttl or None)
        except RedisError as e:
            self._stats["errors"] += 1
            raise CacheError(
                f"Redis SET NX failed: {e}", key=key, operation="set_if_absent", cause=e
            ) from e

        if stored:
            self._stats["claims"] += 1
            logger.debug(f"Cache CLAIM: {key} (TTL: {ttl}s)")
        return bool(stored)

    async def delete(self, key: str) -> bool:
        """Delete key; True if a key was removed"""
        if not self.available:
            return False

        try:
            result = await self._client.delete(key)
            logger.debug(f"Cache DELETE: {key}")
            return result > 0
        except RedisError as e:
            logger.error(f"Redis DELETE error for key '{key}': {e}")
            self._stats["errors"] += 1
            return False

    async def ping(self) -> bool:
        """Check that Redis answers"""
        if not self.available:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def get_stats(self) -> dict[str, Any]:
        """
        Get client statistics.

        Returns:
            Dictionary with hits, misses, hit rate, claims and errors
        """
        total_reads = self._stats["hits"] + self._stats["misses"]
        hit_rate = (self._stats["hits"] / total_reads * 100) if total_reads > 0 else 0.0

        return {
            "enabled": self.enabled,
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "hit_rate_percent": round(hit_rate, 2),
            "sets": self._stats["sets"],
            "claims": self._stats["claims"],
            "errors": self._stats["errors"],
            "total_reads": total_reads,
        }
