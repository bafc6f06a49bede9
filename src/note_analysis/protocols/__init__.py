"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (memory → Redis, real → fake LLM client)
- Unit testing with mock implementations
- Clear separation of concerns

Usage:
    ```python
    from note_analysis.protocols import CacheStore, CompletionClient

    store: CacheStore = MemoryCacheStore()
    store: CacheStore = RedisCacheStore.create()
    ```
"""

from .cache_store import CacheStore
from .completion_client import CompletionClient, MessagesResource

__all__ = [
    "CacheStore",
    "CompletionClient",
    "MessagesResource",
]
