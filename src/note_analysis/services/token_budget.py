"""Token estimation, cost model and dynamic output-token allocation."""

import logging
import math
import re
from dataclasses import dataclass

from note_analysis.config import settings
from note_analysis.entities import TokenUsage
from note_analysis.models import DEFAULT_MODEL, MODEL_CONFIGS, ModelConfig

logger = logging.getLogger(__name__)

_JAPANESE = re.compile(
    r"[\u3000-\u303f\u3040-\u309f\u30a0-\u30ff\uff00-\uff9f\u4e00-\u9faf\u3400-\u4dbf]"
)
_ENGLISH = re.compile(r"[a-zA-Z]")
_DIGITS = re.compile(r"[0-9]")
_WHITESPACE = re.compile(r"\s")

PER_MILLION = 1_000_000


def estimate_tokens(text: str) -> int:
    """Heuristic token count for mixed Japanese/English text.

    Japanese characters are denser than English letters, so each script gets
    its own chars-per-token ratio. A 5% overhead covers special tokens.
    """
    if not text:
        return 0

    japanese = len(_JAPANESE.findall(text))
    english = len(_ENGLISH.findall(text))
    digits = len(_DIGITS.findall(text))
    whitespace = len(_WHITESPACE.findall(text))
    other = len(text) - japanese - english - digits - whitespace

    estimate = math.ceil(
        japanese / 2.5 + english / 4 + digits / 3 + other / 3.5 + whitespace * 0.2
    )
    return estimate + math.ceil(estimate * 0.05)


def _model(model: str | None) -> ModelConfig:
    return MODEL_CONFIGS.get(model or DEFAULT_MODEL) or MODEL_CONFIGS[DEFAULT_MODEL]


def calculate_cost(
    input_tokens: int,
    output_tokens: int,
    cache_creation_input_tokens: int = 0,
    cache_read_input_tokens: int = 0,
    model: str | None = None,
) -> TokenUsage:
    """Price a provider call using the model's four billing tiers.

    ``input_tokens`` counts only uncached input, as reported by the API.
    """
    pricing = _model(model).pricing
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cache_creation_input_tokens=cache_creation_input_tokens,
        cache_read_input_tokens=cache_read_input_tokens,
        input_cost=input_tokens * pricing.input / PER_MILLION,
        output_cost=output_tokens * pricing.output / PER_MILLION,
        cache_write_cost=cache_creation_input_tokens * pricing.cache_write / PER_MILLION,
        cache_read_cost=cache_read_input_tokens * pricing.cache_read / PER_MILLION,
    )


def estimate_cost(
    input_tokens: int,
    output_tokens: int,
    cached: bool = False,
    model: str | None = None,
) -> float:
    """Estimate request cost before calling the provider.

    When ``cached`` is True all input is priced at the cache-read rate.
    """
    pricing = _model(model).pricing
    input_rate = pricing.cache_read if cached else pricing.input
    return (input_tokens * input_rate + output_tokens * pricing.output) / PER_MILLION


def estimate_cost_range(input_tokens: int, output_tokens: int, model: str | None = None) -> dict:
    """Compare the cost of a first (uncached) call with a prompt-cached one."""
    first_call = estimate_cost(input_tokens, output_tokens, cached=False, model=model)
    cached_call = estimate_cost(input_tokens, output_tokens, cached=True, model=model)
    savings = first_call - cached_call
    return {
        "first_call": first_call,
        "cached_call": cached_call,
        "savings": savings,
        "savings_percent": (savings / first_call * 100) if first_call else 0.0,
    }


def format_cost(cost: float) -> str:
    if cost < 0.0001:
        return "<$0.0001"
    if cost < 1:
        return f"${cost:.4f}"
    return f"${cost:.2f}"


@dataclass(frozen=True)
class EndpointTokenConfig:
    """Output-token scaling curve for one endpoint.

    Articles shorter than ``scaling_midpoint`` characters scale from
    ``min_tokens`` to the middle of the range; articles between the midpoint
    and ``scaling_max`` scale through the upper half; longer articles get
    ``max_tokens``.
    """

    min_tokens: int
    max_tokens: int
    scaling_midpoint: int
    scaling_max: int


ENDPOINT_TOKEN_CONFIGS: dict[str, EndpointTokenConfig] = {
    "/api/analyze-article-full": EndpointTokenConfig(1500, 4000, 1500, 3000),
    "/api/analyze-article": EndpointTokenConfig(500, 1000, 1000, 2000),
    "/api/generate-hashtags": EndpointTokenConfig(300, 500, 800, 1500),
    "/api/generate-eyecatch": EndpointTokenConfig(400, 800, 1000, 2000),
    "/api/generate-titles": EndpointTokenConfig(300, 600, 1000, 2500),
}

# Output pricing used for savings estimates (USD per million tokens)
OUTPUT_PRICE_PER_MILLION = 15.0


class DynamicTokenAllocator:
    """Chooses ``max_tokens`` for a request from the article length.

    The result is monotone non-decreasing in article length for a fixed
    endpoint and always lies in ``[floor, ceiling]`` where
    ``ceiling = min(model max output tokens, max_tokens_per_request)``.
    """

    def __init__(
        self,
        configs: dict[str, EndpointTokenConfig] | None = None,
        max_tokens_per_request: int | None = None,
        min_tokens_per_request: int | None = None,
        model: str | None = None,
    ) -> None:
        """Initialize the allocator.

        Args:
            configs: Per-endpoint scaling curves. Defaults to ENDPOINT_TOKEN_CONFIGS.
            max_tokens_per_request: Global ceiling. Defaults to settings.
            min_tokens_per_request: Global floor. Defaults to settings.
            model: Model whose output limit also caps the ceiling. Defaults to settings.
        """
        self._configs = configs if configs is not None else ENDPOINT_TOKEN_CONFIGS
        model_limit = _model(model or settings.anthropic_model).max_output_tokens
        self._ceiling = min(model_limit, max_tokens_per_request or settings.max_tokens_per_request)
        self._floor = max(1, min(min_tokens_per_request or settings.min_tokens_per_request, self._ceiling))

    @classmethod
    def create(cls, model: str | None = None) -> "DynamicTokenAllocator":
        return cls(model=model)

    def raw_tokens(self, article_length: int, endpoint: str) -> int:
        """Unclamped allocation from the endpoint's scaling curve."""
        article_length = max(0, article_length)
        config = self._configs.get(endpoint)

        if config is None:
            logger.warning("Unknown endpoint %s, using default token allocation", endpoint)
            return _round_half_up(min(max(article_length * 0.5, 300), 1000))

        token_range = config.max_tokens - config.min_tokens

        if article_length < config.scaling_midpoint:
            ratio = article_length / config.scaling_midpoint
            return _round_half_up(config.min_tokens + token_range * 0.5 * ratio)

        if article_length < config.scaling_max:
            ratio = (article_length - config.scaling_midpoint) / (
                config.scaling_max - config.scaling_midpoint
            )
            return _round_half_up(config.min_tokens + token_range * 0.5 + token_range * 0.5 * ratio)

        return config.max_tokens

    def compute_max_tokens(self, article_length: int, endpoint: str) -> int:
        """Output-token budget for an article of ``article_length`` characters."""
        tokens = min(max(self.raw_tokens(article_length, endpoint), self._floor), self._ceiling)
        savings = self.estimate_savings(article_length, endpoint)
        logger.info(
            "Token allocation %s: length=%d allocated=%d saved=%d (%.1f%%)",
            endpoint,
            article_length,
            tokens,
            savings["tokens_saved"],
            savings["percent_saved"],
        )
        return tokens

    def estimate_savings(self, article_length: int, endpoint: str) -> dict:
        """Compare the dynamic budget with a fixed budget at the endpoint maximum."""
        config = self._configs.get(endpoint)
        if config is None:
            return {
                "fixed_tokens": 0,
                "dynamic_tokens": 0,
                "tokens_saved": 0,
                "percent_saved": 0.0,
                "cost_savings": 0.0,
            }

        fixed = config.max_tokens
        dynamic = self.raw_tokens(article_length, endpoint)
        saved = fixed - dynamic
        return {
            "fixed_tokens": fixed,
            "dynamic_tokens": dynamic,
            "tokens_saved": saved,
            "percent_saved": saved / fixed * 100,
            "cost_savings": saved / PER_MILLION * OUTPUT_PRICE_PER_MILLION,
        }

    def get_endpoint_config(self, endpoint: str) -> EndpointTokenConfig | None:
        return self._configs.get(endpoint)

    @property
    def floor(self) -> int:
        return self._floor

    @property
    def ceiling(self) -> int:
        return self._ceiling


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
