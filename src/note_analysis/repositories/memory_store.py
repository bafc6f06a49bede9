"""In-process implementation of CacheStore.

Entries live in an insertion-ordered dict guarded by a lock. When the store
reaches capacity the oldest entry is evicted first.
"""

import logging
import threading
from collections import OrderedDict

from note_analysis.config import settings
from note_analysis.entities import CacheEntryEntity

logger = logging.getLogger(__name__)


class MemoryCacheStore:
    """Bounded in-memory cache store.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed. State is process-local.
    """

    def __init__(self, max_size: int | None = None) -> None:
        """Initialize the memory store.

        Args:
            max_size: Maximum number of entries. Defaults to settings.
        """
        self._max_size = max_size or settings.cache_max_size
        self._entries: OrderedDict[str, CacheEntryEntity] = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def create(cls, max_size: int | None = None) -> "MemoryCacheStore":
        """Factory method to create MemoryCacheStore with defaults.

        Args:
            max_size: Capacity in entries. If None, uses settings.

        Returns:
            Configured MemoryCacheStore
        """
        return cls(max_size=max_size)

    def get(self, key: str) -> CacheEntryEntity | None:
        with self._lock:
            return self._entries.get(key)

    def set(self, entry: CacheEntryEntity) -> None:
        with self._lock:
            if entry.key in self._entries:
                del self._entries[entry.key]
            elif len(self._entries) >= self._max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Cache full, evicted %s", evicted)
            self._entries[entry.key] = entry

    def delete_by_key(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_by_prefix(self, prefix: str) -> int:
        with self._lock:
            keys = [key for key in self._entries if key.startswith(prefix)]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def clear_all(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def count_all(self) -> int:
        with self._lock:
            return len(self._entries)

    def health_check(self) -> bool:
        return True

    @property
    def max_size(self) -> int:
        return self._max_size
