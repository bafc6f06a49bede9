"""Redis implementation of CacheStore.

Each entry is stored as a JSON document under its cache key with a native
Redis expiry matching the entry TTL, so Redis reclaims stale entries on its
own while ResponseCache still checks expiry on every read.
"""

import json
import logging

import redis

from note_analysis.config import get_redis_client
from note_analysis.entities import CacheEntryEntity

logger = logging.getLogger(__name__)


class RedisCacheStore:
    """Redis-backed cache store shared across service instances.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(self, redis_client: redis.Redis | None = None, namespace: str = "") -> None:
        """Initialize the Redis cache store.

        Args:
            redis_client: Redis client instance. If None, creates default.
            namespace: Prefix limiting clear_all and count_all to this store's keys.
        """
        self._client = redis_client or get_redis_client()
        self._namespace = namespace

    @classmethod
    def create(
        cls,
        redis_client: redis.Redis | None = None,
        namespace: str = "",
    ) -> "RedisCacheStore":
        """Factory method to create RedisCacheStore with defaults.

        Args:
            redis_client: Redis client. If None, one is built from settings.
            namespace: Key prefix owned by this store.

        Returns:
            Configured RedisCacheStore
        """
        return cls(redis_client=redis_client, namespace=namespace)

    def get(self, key: str) -> CacheEntryEntity | None:
        raw = self._client.get(key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        try:
            return CacheEntryEntity.from_dict(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError):
            logger.warning("Dropping unreadable cache entry %s", key)
            self._client.delete(key)
            return None

    def set(self, entry: CacheEntryEntity) -> None:
        self._client.set(
            entry.key,
            json.dumps(entry.to_dict(), ensure_ascii=False),
            ex=max(1, int(entry.ttl_seconds)),
        )

    def delete_by_key(self, key: str) -> bool:
        result: int = self._client.delete(key)  # type: ignore[assignment]
        return result > 0

    def delete_by_prefix(self, prefix: str) -> int:
        count = 0
        for key in self._client.scan_iter(match=f"{prefix}*"):
            if self._client.delete(key):
                count += 1
        return count

    def clear_all(self) -> int:
        return self.delete_by_prefix(self._namespace)

    def count_all(self) -> int:
        count = 0
        for _ in self._client.scan_iter(match=f"{self._namespace}*"):
            count += 1
        return count

    def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
