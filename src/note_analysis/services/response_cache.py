"""Response cache keyed by request fingerprint.

Wraps a CacheStore with TTL enforcement, hit/miss accounting and the key
scheme ``{prefix}:{endpoint}:{fingerprint}``.
"""

import logging
import time
from collections.abc import Callable
from typing import Any

from note_analysis.config import settings
from note_analysis.entities import CacheEntryEntity
from note_analysis.models import CacheStats, PerformanceMetrics
from note_analysis.protocols import CacheStore
from note_analysis.utils import fingerprint

logger = logging.getLogger(__name__)

# Average cost of one analysis call avoided by a cache hit (USD)
COST_SAVED_PER_HIT = 0.02


def estimate_cache_cost_savings(hits: int, cost_per_call: float = COST_SAVED_PER_HIT) -> float:
    """Estimate dollars saved by ``hits`` cache hits."""
    return hits * cost_per_call


class ResponseCache:
    """TTL cache for complete analysis responses.

    Expired entries are never returned: expiry is checked on every read and
    an expired entry is evicted at that point. There is no background sweep.

    Two concurrent misses for the same fingerprint may both reach the
    provider; the later write simply replaces the earlier one.

    Example:
        ```python
        cache = ResponseCache.create(store=MemoryCacheStore.create())
        cache.put("/api/analyze-article", article, payload)
        cache.get("/api/analyze-article", article)  # -> payload
        ```
    """

    def __init__(
        self,
        store: CacheStore,
        ttl: int | None = None,
        key_prefix: str | None = None,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the response cache.

        Args:
            store: Storage backend (required).
            ttl: Default entry lifetime in seconds. Defaults to settings.
            key_prefix: Namespace for keys. Defaults to settings.
            enabled: When False every lookup misses and nothing is stored.
            clock: Returns the current Unix time in seconds.
        """
        self._store = store
        self._ttl = ttl or settings.cache_ttl
        self._prefix = key_prefix or settings.cache_key_prefix
        self._enabled = enabled
        self._clock = clock
        self._metrics = PerformanceMetrics()

    @classmethod
    def create(
        cls,
        store: CacheStore,
        ttl: int | None = None,
        key_prefix: str | None = None,
        enabled: bool | None = None,
        clock: Callable[[], float] = time.time,
    ) -> "ResponseCache":
        """Factory method to create ResponseCache with settings defaults.

        Args:
            store: Storage backend (required).
            ttl: Entry TTL in seconds. If None, uses settings.
            key_prefix: Key namespace. If None, uses settings.
            enabled: If None, follows ENABLE_API_RESPONSE_CACHE.
            clock: Time source, overridable in tests.

        Returns:
            Configured ResponseCache instance
        """
        return cls(
            store=store,
            ttl=ttl,
            key_prefix=key_prefix,
            enabled=settings.enable_response_cache if enabled is None else enabled,
            clock=clock,
        )

    def make_key(self, endpoint: str, text: str) -> str:
        """Build the storage key for an endpoint and article."""
        return f"{self._prefix}:{endpoint}:{fingerprint(endpoint, text)}"

    def get(self, endpoint: str, text: str) -> Any | None:
        """Return the cached response for this request, or None."""
        return self.get_by_key(self.make_key(endpoint, text))

    def put(
        self,
        endpoint: str,
        text: str,
        value: Any,
        ttl_seconds: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Cache a response for this request and return its key."""
        key = self.make_key(endpoint, text)
        self.put_by_key(key, value, ttl_seconds, {"endpoint": endpoint, **(metadata or {})})
        return key

    def get_by_key(self, key: str) -> Any | None:
        """Look up an entry by raw key, enforcing its TTL."""
        if not self._enabled:
            return None

        entry = self._store.get(key)
        if entry is None:
            self._metrics.record_miss()
            return None

        if entry.is_expired(self._clock()):
            self._store.delete_by_key(key)
            self._metrics.record_miss()
            logger.debug("Cache entry expired: %s", key)
            return None

        self._metrics.record_hit()
        logger.info("Cache HIT %s (age %.0fs)", key, self._clock() - entry.stored_at)
        return entry.value

    def put_by_key(
        self,
        key: str,
        value: Any,
        ttl_seconds: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Store a value under a raw key."""
        if not self._enabled:
            return

        entry = CacheEntryEntity(
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl_seconds=ttl_seconds or self._ttl,
            metadata=metadata or {},
        )
        self._store.set(entry)
        logger.info("Cache STORE %s (ttl %ds)", key, entry.ttl_seconds)

    def invalidate(self, endpoint: str | None = None) -> int:
        """Drop cached responses for one endpoint, or all of them.

        Returns:
            Number of entries deleted
        """
        prefix = f"{self._prefix}:{endpoint}:" if endpoint else f"{self._prefix}:"
        count = self._store.delete_by_prefix(prefix)
        logger.info("Cache invalidated %d entries matching %s*", count, prefix)
        return count

    def clear(self) -> int:
        """Clear every entry and reset the counters."""
        count = self._store.delete_by_prefix(f"{self._prefix}:")
        self._metrics.reset()
        return count

    def get_stats(self) -> CacheStats:
        """Get hit/miss counters, size and estimated savings."""
        return CacheStats(
            hits=self._metrics.cache_hits,
            misses=self._metrics.cache_misses,
            hit_rate=self._metrics.hit_rate,
            size=self._store.count_all(),
            estimated_cost_savings=estimate_cache_cost_savings(self._metrics.cache_hits),
            ttl_seconds=self._ttl,
            enabled=self._enabled,
        )

    def is_healthy(self) -> bool:
        return self._store.health_check()

    @property
    def hits(self) -> int:
        return self._metrics.cache_hits

    @property
    def misses(self) -> int:
        return self._metrics.cache_misses

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups served from cache."""
        return self._metrics.hit_rate

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def ttl(self) -> int:
        return self._ttl

    @property
    def store(self) -> CacheStore:
        """Get the underlying store (for testing)."""
        return self._store
