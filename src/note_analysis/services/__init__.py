"""Service layer for business logic.

This layer contains the request pipeline and every component it composes.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository / Provider
    (HTTP)  -> (Business) -> (Data Access / Anthropic API)

Usage:
    ```python
    from note_analysis.repositories import MemoryCacheStore
    from note_analysis.services import ResponseCache, DynamicTokenAllocator

    # Using factory methods (recommended)
    cache = ResponseCache.create(store=MemoryCacheStore.create())
    allocator = DynamicTokenAllocator.create()

    # Or manual creation
    cache = ResponseCache(store=MemoryCacheStore(max_size=100), ttl=60)
    ```
"""

from .analysis_service import ENDPOINTS, AnalysisService, EndpointDefinition
from .deduplicator import DedupResult, RequestDeduplicator
from .experiments import ExperimentManager, validate_experiment
from .gateway import AIGatewayService, CompletionConfig, CompletionRequest, CompletionResponse
from .output_parser import OutputNormalizer
from .prompt_builder import BuiltPrompt, PromptBuilder, ValidationResult, validate_prompt
from .prompt_registry import PromptRegistry
from .rate_limiter import (
    FixedWindowRateLimiter,
    RateLimiter,
    RateLimitResult,
    SlidingWindowRateLimiter,
    create_rate_limiter,
)
from .response_cache import ResponseCache, estimate_cache_cost_savings
from .token_budget import (
    DynamicTokenAllocator,
    calculate_cost,
    estimate_cost,
    estimate_cost_range,
    estimate_tokens,
    format_cost,
)
from .usage_tracker import UsageTracker, generate_usage_report
from .validation import validate_article_input

__all__ = [
    "AIGatewayService",
    "AnalysisService",
    "BuiltPrompt",
    "CompletionConfig",
    "CompletionRequest",
    "CompletionResponse",
    "DedupResult",
    "DynamicTokenAllocator",
    "ENDPOINTS",
    "EndpointDefinition",
    "ExperimentManager",
    "FixedWindowRateLimiter",
    "OutputNormalizer",
    "PromptBuilder",
    "PromptRegistry",
    "RateLimitResult",
    "RateLimiter",
    "RequestDeduplicator",
    "ResponseCache",
    "SlidingWindowRateLimiter",
    "UsageTracker",
    "ValidationResult",
    "calculate_cost",
    "create_rate_limiter",
    "estimate_cache_cost_savings",
    "estimate_cost",
    "estimate_cost_range",
    "estimate_tokens",
    "format_cost",
    "generate_usage_report",
    "validate_article_input",
    "validate_experiment",
    "validate_prompt",
]
