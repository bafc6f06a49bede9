from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


@dataclass(frozen=True)
class ModelPricing:
    """USD price per million tokens for each billing tier."""

    input: float
    output: float
    cache_write: float
    cache_read: float


@dataclass(frozen=True)
class ModelConfig:
    """Static description of a supported Claude model."""

    model: str
    display_name: str
    max_context_tokens: int
    max_output_tokens: int
    pricing: ModelPricing
    supports_cache: bool = True
    tier: str = "balanced"


MODEL_CONFIGS: dict[str, ModelConfig] = {
    "claude-sonnet-4-20250514": ModelConfig(
        model="claude-sonnet-4-20250514",
        display_name="Claude Sonnet 4",
        max_context_tokens=200_000,
        max_output_tokens=8192,
        pricing=ModelPricing(input=3.0, output=15.0, cache_write=3.75, cache_read=0.30),
    ),
    "claude-sonnet-4-5-20250929": ModelConfig(
        model="claude-sonnet-4-5-20250929",
        display_name="Claude Sonnet 4.5",
        max_context_tokens=200_000,
        max_output_tokens=8192,
        pricing=ModelPricing(input=3.0, output=15.0, cache_write=3.75, cache_read=0.30),
    ),
    "claude-3-5-sonnet-20241022": ModelConfig(
        model="claude-3-5-sonnet-20241022",
        display_name="Claude 3.5 Sonnet",
        max_context_tokens=200_000,
        max_output_tokens=8192,
        pricing=ModelPricing(input=3.0, output=15.0, cache_write=3.75, cache_read=0.30),
    ),
    "claude-3-opus-20240229": ModelConfig(
        model="claude-3-opus-20240229",
        display_name="Claude 3 Opus",
        max_context_tokens=200_000,
        max_output_tokens=4096,
        pricing=ModelPricing(input=15.0, output=75.0, cache_write=18.75, cache_read=1.5),
        tier="powerful",
    ),
    "claude-3-haiku-20240307": ModelConfig(
        model="claude-3-haiku-20240307",
        display_name="Claude 3 Haiku",
        max_context_tokens=200_000,
        max_output_tokens=4096,
        pricing=ModelPricing(input=0.25, output=1.25, cache_write=0.30, cache_read=0.03),
        tier="fast",
    ),
}

DEFAULT_MODEL = "claude-sonnet-4-20250514"


def get_model_config(model: str) -> ModelConfig | None:
    """Look up a model's configuration, or None when unsupported."""
    return MODEL_CONFIGS.get(model)


class CacheStats(BaseModel):
    """Response cache statistics."""

    hits: int
    misses: int
    hit_rate: float
    size: int
    estimated_cost_savings: float

    model_config = {"extra": "allow"}


@dataclass
class PerformanceMetrics:
    """Track hit/miss counters for a cache."""

    total_queries: int = 0
    cache_hits: int = 0
    cache_misses: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.total_queries == 0:
            return 0.0
        return self.cache_hits / self.total_queries

    def record_hit(self) -> None:
        """Record a cache hit."""
        self.total_queries += 1
        self.cache_hits += 1

    def record_miss(self) -> None:
        """Record a cache miss."""
        self.total_queries += 1
        self.cache_misses += 1

    def reset(self) -> None:
        self.total_queries = 0
        self.cache_hits = 0
        self.cache_misses = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "total_queries": self.total_queries,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "hit_rate": self.hit_rate,
        }
