"""Cache storage protocol.

Defines the interface for any key/value backend that can hold cached
analysis responses.

Implementations can include:
- In-process memory store (default)
- Redis
- Any other key/value store with prefix deletion
"""

from typing import Protocol, runtime_checkable

from note_analysis.entities import CacheEntryEntity


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Similar to Go's interface pattern - any type that implements these
    methods satisfies the protocol, no explicit inheritance needed.

    Expiry is enforced by the caller (ResponseCache); stores only keep
    entries and may drop them early.

    Example:
        ```python
        from note_analysis.protocols import CacheStore

        store: CacheStore = MemoryCacheStore()
        store: CacheStore = RedisCacheStore(...)
        ```
    """

    def get(self, key: str) -> CacheEntryEntity | None:
        """Fetch an entry by key.

        Args:
            key: The storage key

        Returns:
            The entry, or None if absent
        """
        ...

    def set(self, entry: CacheEntryEntity) -> None:
        """Store an entry, replacing any previous value under its key.

        Args:
            entry: The entry to store
        """
        ...

    def delete_by_key(self, key: str) -> bool:
        """Delete a specific entry by key.

        Args:
            key: The storage key to delete

        Returns:
            True if deleted, False otherwise
        """
        ...

    def delete_by_prefix(self, prefix: str) -> int:
        """Delete all entries whose key starts with ``prefix``.

        Args:
            prefix: Key prefix to match

        Returns:
            Number of entries deleted
        """
        ...

    def clear_all(self) -> int:
        """Clear all entries.

        Returns:
            Number of entries deleted
        """
        ...

    def count_all(self) -> int:
        """Count stored entries.

        Returns:
            Number of entries currently held
        """
        ...

    def health_check(self) -> bool:
        """Check if the backend is reachable.

        Returns:
            True if healthy, False otherwise
        """
        ...
