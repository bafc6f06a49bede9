"""Token usage and usage-analytics entities."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TokenUsage:
    """Token counts and cost for a single provider call.

    Costs are in USD and computed from the four billing tiers.
    """

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0
    input_cost: float = 0.0
    output_cost: float = 0.0
    cache_write_cost: float = 0.0
    cache_read_cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def total_cost(self) -> float:
        return self.input_cost + self.output_cost + self.cache_write_cost + self.cache_read_cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cacheCreationInputTokens": self.cache_creation_input_tokens,
            "cacheReadInputTokens": self.cache_read_input_tokens,
            "totalTokens": self.total_tokens,
            "totalCost": round(self.total_cost, 6),
        }


@dataclass(frozen=True)
class UsageRecord:
    """One analysis request as seen by usage analytics."""

    timestamp: float
    endpoint: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0
    cost: float = 0.0
    success: bool = True
    cache_hit: bool = False
    deduplicated: bool = False
    article_length: int = 0
    response_time_ms: float = 0.0
    prompt_id: str | None = None
    client_id: str | None = None
    error: str | None = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class EndpointUsage:
    requests: int = 0
    tokens: int = 0
    cost: float = 0.0
    cache_hits: int = 0


@dataclass
class UsageStats:
    """Aggregated usage over a time window."""

    period_start: float
    period_end: float
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    cache_hits: int = 0
    deduplicated_requests: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost: float = 0.0
    total_response_time_ms: float = 0.0
    by_endpoint: dict[str, EndpointUsage] = field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    @property
    def average_cost_per_request(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_cost / self.total_requests

    @property
    def average_tokens_per_request(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_tokens / self.total_requests

    @property
    def average_response_time_ms(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_response_time_ms / self.total_requests

    @property
    def cache_hit_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.cache_hits / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalRequests": self.total_requests,
            "successfulRequests": self.successful_requests,
            "failedRequests": self.failed_requests,
            "cacheHits": self.cache_hits,
            "cacheHitRate": round(self.cache_hit_rate, 4),
            "deduplicatedRequests": self.deduplicated_requests,
            "totalInputTokens": self.total_input_tokens,
            "totalOutputTokens": self.total_output_tokens,
            "totalTokens": self.total_tokens,
            "totalCost": round(self.total_cost, 6),
            "averageCostPerRequest": round(self.average_cost_per_request, 6),
            "averageTokensPerRequest": round(self.average_tokens_per_request, 2),
            "averageResponseTimeMs": round(self.average_response_time_ms, 2),
            "periodStart": self.period_start,
            "periodEnd": self.period_end,
            "byEndpoint": {
                endpoint: {
                    "requests": usage.requests,
                    "tokens": usage.tokens,
                    "cost": round(usage.cost, 6),
                    "cacheHits": usage.cache_hits,
                }
                for endpoint, usage in self.by_endpoint.items()
            },
        }
