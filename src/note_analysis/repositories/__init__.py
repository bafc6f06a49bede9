"""Repository implementations (data access layer).

Each repository satisfies a protocol from the protocols package:
- MemoryCacheStore → CacheStore (default, process-local)
- RedisCacheStore → CacheStore (shared across instances)
"""

from .memory_store import MemoryCacheStore
from .redis_store import RedisCacheStore

__all__ = [
    "MemoryCacheStore",
    "RedisCacheStore",
]
