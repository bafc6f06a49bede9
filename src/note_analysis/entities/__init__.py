"""Domain entities for internal representation.

These are pure dataclasses used internally by services and
repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.

Entities should have:
- No Pydantic validation
- No external dependencies
- Pure domain logic only
"""

from .cache_entry import CacheEntryEntity
from .experiment import Experiment, ExperimentVariant
from .prompt_template import (
    OutputFormat,
    OutputValidation,
    PromptCacheConfig,
    PromptExample,
    PromptMetadata,
    PromptPerformance,
    PromptSelection,
    PromptTemplate,
    RegistryConfig,
)
from .usage import EndpointUsage, TokenUsage, UsageRecord, UsageStats

__all__ = [
    "CacheEntryEntity",
    "Experiment",
    "ExperimentVariant",
    "OutputFormat",
    "OutputValidation",
    "PromptCacheConfig",
    "PromptExample",
    "PromptMetadata",
    "PromptPerformance",
    "PromptSelection",
    "PromptTemplate",
    "RegistryConfig",
    "EndpointUsage",
    "TokenUsage",
    "UsageRecord",
    "UsageStats",
]
