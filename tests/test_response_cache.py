"""
Tests for the response cache and its storage backends.
"""

import pytest

from note_analysis.repositories import MemoryCacheStore
from note_analysis.services import ResponseCache, estimate_cache_cost_savings

ENDPOINT = "/api/analyze-article"


@pytest.fixture
def cache(clock):
    """Create a cache over an in-memory store with a fake clock."""
    return ResponseCache(store=MemoryCacheStore(max_size=10), ttl=60, key_prefix="test", clock=clock)


def test_get_miss_then_hit(cache):
    """A stored response is returned for the same request."""
    assert cache.get(ENDPOINT, "article") is None

    cache.put(ENDPOINT, "article", {"hashtags": ["#a"]})

    assert cache.get(ENDPOINT, "article") == {"hashtags": ["#a"]}
    assert cache.hits == 1
    assert cache.misses == 1
    assert cache.hit_rate == 0.5


def test_key_uses_prefix_endpoint_and_fingerprint(cache):
    """Keys follow {prefix}:{endpoint}:{fingerprint}."""
    key = cache.put(ENDPOINT, "article", "value")
    prefix, endpoint, digest = key.split(":", 2)
    assert prefix == "test"
    assert endpoint == ENDPOINT
    assert len(digest) == 64


def test_whitespace_variants_share_an_entry(cache):
    """Normalization makes trivially different inputs hit the same entry."""
    cache.put(ENDPOINT, "line one\nline two", "value")
    assert cache.get(ENDPOINT, "  line one \r\nline two  ") == "value"


def test_ttl_boundary(clock):
    """With a 1s TTL an entry hits at 0.5s and misses at 1.5s."""
    store = MemoryCacheStore(max_size=10)
    cache = ResponseCache(store=store, ttl=1, key_prefix="test", clock=clock)
    cache.put(ENDPOINT, "article", "value")

    clock.advance(0.5)
    assert cache.get(ENDPOINT, "article") == "value"

    clock.advance(1.0)
    assert cache.get(ENDPOINT, "article") is None
    assert store.count_all() == 0


def test_per_entry_ttl_overrides_default(cache, clock):
    """put() accepts a per-entry TTL."""
    cache.put(ENDPOINT, "article", "value", ttl_seconds=5)
    clock.advance(10)
    assert cache.get(ENDPOINT, "article") is None


def test_disabled_cache_never_stores(clock):
    """A disabled cache misses without recording anything."""
    cache = ResponseCache(store=MemoryCacheStore(max_size=10), ttl=60, enabled=False, clock=clock)
    cache.put(ENDPOINT, "article", "value")
    assert cache.get(ENDPOINT, "article") is None
    assert cache.store.count_all() == 0


def test_invalidate_by_endpoint(cache):
    """invalidate() can target one endpoint."""
    cache.put("/api/analyze-article", "article", 1)
    cache.put("/api/generate-hashtags", "article", 2)

    assert cache.invalidate("/api/analyze-article") == 1
    assert cache.get("/api/analyze-article", "article") is None
    assert cache.get("/api/generate-hashtags", "article") == 2

    assert cache.invalidate() == 1
    assert cache.store.count_all() == 0


def test_memory_store_evicts_oldest_when_full(clock):
    """The bounded memory store drops its oldest entry first."""
    cache = ResponseCache(store=MemoryCacheStore(max_size=2), ttl=60, key_prefix="test", clock=clock)
    cache.put(ENDPOINT, "first", 1)
    cache.put(ENDPOINT, "second", 2)
    cache.put(ENDPOINT, "third", 3)

    assert cache.get(ENDPOINT, "first") is None
    assert cache.get(ENDPOINT, "third") == 3


def test_get_stats(cache):
    """Stats report counters, size and estimated savings."""
    cache.put(ENDPOINT, "article", "value")
    cache.get(ENDPOINT, "article")
    cache.get(ENDPOINT, "other")

    stats = cache.get_stats()
    assert stats.hits == 1
    assert stats.misses == 1
    assert stats.size == 1
    assert stats.estimated_cost_savings == pytest.approx(0.02)


def test_estimate_cache_cost_savings():
    """Each hit saves the average cost of one call."""
    assert estimate_cache_cost_savings(10) == pytest.approx(0.2)
