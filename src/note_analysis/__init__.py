"""note-analysis - cost-optimized Claude analysis for note.com articles.

This package provides a layered architecture around the Anthropic API:

Layers:
    - protocols: Interface contracts (CacheStore, CompletionClient)
    - repositories: Cache storage implementations (memory, Redis)
    - services: Business logic (cache, limiter, dedup, token budget,
      prompt registry, experiments, gateway, orchestration)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)
    - prompts: Built-in prompt templates

Usage:
    ```python
    from note_analysis.services import DynamicTokenAllocator, calculate_cost

    allocator = DynamicTokenAllocator.create()
    allocator.compute_max_tokens(1200, "/api/analyze-article")
    calculate_cost(1000, 500).total_cost  # 0.0105
    ```

For HTTP API:
    ```python
    from note_analysis.api.app import app, create_app
    ```
"""

from note_analysis.config import Settings, get_redis_client, get_settings, settings
from note_analysis.dto import AnalyzeArticleRequest
from note_analysis.entities import (
    CacheEntryEntity,
    Experiment,
    ExperimentVariant,
    PromptTemplate,
    TokenUsage,
)
from note_analysis.exceptions import AnalysisError
from note_analysis.handlers import AnalysisHandler
from note_analysis.protocols import CacheStore, CompletionClient
from note_analysis.repositories import MemoryCacheStore, RedisCacheStore
from note_analysis.services import (
    AIGatewayService,
    AnalysisService,
    DynamicTokenAllocator,
    ExperimentManager,
    PromptRegistry,
    RequestDeduplicator,
    ResponseCache,
)

__all__ = [
    # Configuration
    "Settings",
    "settings",
    "get_settings",
    "get_redis_client",
    # Protocols (interfaces)
    "CacheStore",
    "CompletionClient",
    # Services (business logic)
    "AIGatewayService",
    "AnalysisService",
    "DynamicTokenAllocator",
    "ExperimentManager",
    "PromptRegistry",
    "RequestDeduplicator",
    "ResponseCache",
    # Handlers (HTTP)
    "AnalysisHandler",
    # Repositories (data access)
    "MemoryCacheStore",
    "RedisCacheStore",
    # Entities (domain models)
    "CacheEntryEntity",
    "Experiment",
    "ExperimentVariant",
    "PromptTemplate",
    "TokenUsage",
    # Errors
    "AnalysisError",
    # DTOs (API contracts)
    "AnalyzeArticleRequest",
]
