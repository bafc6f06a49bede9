"""Request orchestration for the analysis endpoints.

Each analysis request runs through the same pipeline:

    validate -> rate limit -> dedup -> response cache -> token budget
    -> prompt resolution -> provider call -> parse/normalize -> cache
    -> dedup record -> usage log

Early exits: invalid input (400), rate limited (429), dedup replay and
cache hit (200 without a provider call). Failures after the rate-limit
check are recorded in usage analytics before being re-raised.
"""

import copy
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from note_analysis.entities import PromptSelection, PromptTemplate, UsageRecord
from note_analysis.exceptions import (
    AnalysisError,
    PromptNotFoundError,
    RateLimitError,
    UnknownError,
    ValidationError,
)
from note_analysis.services.deduplicator import RequestDeduplicator
from note_analysis.services.experiments import ExperimentManager
from note_analysis.services.gateway import AIGatewayService, CompletionRequest
from note_analysis.services.output_parser import OutputNormalizer
from note_analysis.services.prompt_builder import PromptBuilder
from note_analysis.services.prompt_registry import PromptRegistry
from note_analysis.services.rate_limiter import RateLimiter
from note_analysis.services.response_cache import COST_SAVED_PER_HIT, ResponseCache
from note_analysis.services.token_budget import DynamicTokenAllocator, estimate_cost, estimate_tokens
from note_analysis.services.usage_tracker import UsageTracker, generate_usage_report
from note_analysis.services.validation import validate_article_input
from note_analysis.utils import fingerprint

logger = logging.getLogger(__name__)

ANALYZE_ARTICLE = "/api/analyze-article"
ANALYZE_ARTICLE_FULL = "/api/analyze-article-full"
GENERATE_HASHTAGS = "/api/generate-hashtags"
GENERATE_EYECATCH = "/api/generate-eyecatch"
GENERATE_TITLES = "/api/generate-titles"

TITLE_COUNT = 5


@dataclass(frozen=True)
class EndpointDefinition:
    """Which prompt category and output parser serve an endpoint.

    ``variables`` are injected into the template next to ``articleText``.
    """

    path: str
    category: str
    parser: str
    variables: dict[str, Any] = field(default_factory=dict)


ENDPOINTS: dict[str, EndpointDefinition] = {
    ANALYZE_ARTICLE: EndpointDefinition(ANALYZE_ARTICLE, "article", "parse_article"),
    ANALYZE_ARTICLE_FULL: EndpointDefinition(ANALYZE_ARTICLE_FULL, "analysis", "parse_full"),
    GENERATE_HASHTAGS: EndpointDefinition(GENERATE_HASHTAGS, "hashtag", "parse_hashtags"),
    GENERATE_EYECATCH: EndpointDefinition(GENERATE_EYECATCH, "eyecatch", "parse_eyecatch"),
    GENERATE_TITLES: EndpointDefinition(
        GENERATE_TITLES, "titles", "parse_titles", variables={"count": TITLE_COUNT}
    ),
}


class AnalysisService:
    """Composes cache, limiter, deduplicator, registry and gateway.

    One instance serves every analysis endpoint and is shared across
    requests; all of its collaborators guard their own state.
    """

    def __init__(
        self,
        gateway: AIGatewayService,
        response_cache: ResponseCache,
        rate_limiter: RateLimiter,
        deduplicator: RequestDeduplicator,
        allocator: DynamicTokenAllocator,
        registry: PromptRegistry,
        experiments: ExperimentManager,
        usage_tracker: UsageTracker,
        normalizer: OutputNormalizer,
        builder: PromptBuilder | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize the service.

        Args:
            gateway: Provider facade.
            response_cache: Long-lived cache of complete responses.
            rate_limiter: Per-client request quota.
            deduplicator: Short-lived per-client replay store.
            allocator: Chooses max_tokens from the article length.
            registry: Prompt templates.
            experiments: A/B experiments consulted when the registry enables them.
            usage_tracker: Usage analytics sink.
            normalizer: Parses and repairs model output.
            builder: Renders templates. Defaults to one following the registry config.
            clock: Monotonic time source in seconds, for response timings.
        """
        self._gateway = gateway
        self._cache = response_cache
        self._limiter = rate_limiter
        self._dedup = deduplicator
        self._allocator = allocator
        self._registry = registry
        self._experiments = experiments
        self._usage = usage_tracker
        self._normalizer = normalizer
        self._builder = builder or PromptBuilder(
            skip_validation=not registry.config.validation_enabled,
            caching_enabled=registry.config.caching_enabled,
        )
        self._clock = clock

    async def analyze(self, endpoint: str, article_text: Any, client_id: str) -> dict[str, Any]:
        """Run the analysis pipeline for one request.

        Args:
            endpoint: One of the paths in ENDPOINTS
            article_text: The raw ``articleText`` value from the request body
            client_id: Identity used for rate limiting and de-duplication

        Returns:
            The analysis payload with a ``_metadata`` block

        Raises:
            ValidationError: If the input is invalid
            RateLimitError: If the client is over quota
            AnalysisError: For configuration, provider and parsing failures
        """
        definition = ENDPOINTS.get(endpoint)
        if definition is None:
            raise ValidationError(f"Unknown endpoint: {endpoint}")

        started = self._clock()
        text = validate_article_input(article_text)

        limit = self._limiter.check(client_id)
        if not limit.allowed:
            logger.warning(
                "Rate limit exceeded for %s on %s (retry in %ds)", client_id, endpoint, limit.reset_in
            )
            raise RateLimitError(
                f"リクエストが多すぎます。{limit.reset_in}秒後に再試行してください。"
                f"（Too many requests. Please try again in {limit.reset_in} seconds）",
                retry_after=limit.reset_in,
            )

        request_hash = fingerprint(endpoint, text)
        dedup_payload = {"endpoint": endpoint, "articleText": text}

        duplicate = self._dedup.check_duplicate(client_id, dedup_payload)
        if duplicate.is_duplicate:
            response = copy.deepcopy(duplicate.cached_result)
            response["_metadata"].update(
                cached=True,
                deduplication=True,
                actualCost=0.0,
                tokensUsed=0,
                cacheStatus="dedup",
                responseTimeMs=self._elapsed_ms(started),
            )
            self._record(endpoint, text, client_id, started, deduplicated=True, cache_hit=True)
            return response

        cached = self._cache.get(endpoint, text)
        if cached is not None:
            response = copy.deepcopy(cached)
            elapsed = self._elapsed_ms(started)
            response["_metadata"].update(
                cached=True,
                deduplication=False,
                estimatedCost=0.0,
                actualCost=0.0,
                tokensUsed=0,
                costSaved=COST_SAVED_PER_HIT,
                cacheStatus="hit",
                responseTimeMs=elapsed,
                rateLimitRemaining=limit.remaining,
            )
            logger.info("Serving %s from response cache (%.0fms)", endpoint, elapsed)
            self._dedup.record_result(client_id, dedup_payload, response)
            self._record(endpoint, text, client_id, started, cache_hit=True)
            return response

        max_tokens = self._allocator.compute_max_tokens(len(text), endpoint)
        selection = self._select_prompt(definition.category, client_id)
        template = selection.template

        try:
            prompt = self._builder.build(template, {**definition.variables, "articleText": text})
            estimated_input = estimate_tokens(prompt.system_prompt + prompt.messages[0]["content"])
            estimated = estimate_cost(estimated_input, max_tokens, model=self._gateway.model)

            completion = await self._gateway.generate_completion(
                CompletionRequest.from_prompt(prompt, model=self._gateway.model, max_tokens=max_tokens)
            )
            payload = getattr(self._normalizer, definition.parser)(completion.content, template)
        except AnalysisError as e:
            self._record_failure(endpoint, text, client_id, started, template, e.message)
            raise
        except Exception as e:
            logger.exception("Unexpected error while analyzing article for %s", endpoint)
            self._record_failure(endpoint, text, client_id, started, template, str(e))
            raise UnknownError("An unexpected error occurred. Please try again.") from e

        usage = completion.usage
        elapsed = self._elapsed_ms(started)
        response = {
            **payload,
            "_metadata": {
                "cached": False,
                "deduplication": False,
                "estimatedCost": round(estimated, 6),
                "actualCost": round(usage.total_cost, 6),
                "tokensUsed": usage.total_tokens,
                "usage": usage.to_dict(),
                "requestHash": request_hash,
                "promptId": template.id,
                "promptVersion": template.version,
                "experimentId": selection.experiment_id,
                "variantId": selection.variant_id,
                "model": completion.metadata.get("model") or self._gateway.model,
                "maxTokens": max_tokens,
                "promptCacheStatus": completion.metadata.get("cache_status"),
                "cacheStatus": "miss",
                "responseTimeMs": elapsed,
                "rateLimitRemaining": limit.remaining,
            },
        }

        self._cache.put(endpoint, text, response, metadata={"promptId": template.id})
        self._dedup.record_result(client_id, dedup_payload, response)
        self._record(
            endpoint,
            text,
            client_id,
            started,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cache_creation_input_tokens=usage.cache_creation_input_tokens,
            cache_read_input_tokens=usage.cache_read_input_tokens,
            cost=usage.total_cost,
            prompt_id=template.id,
        )
        self._track_performance(template, usage.input_tokens, usage.output_tokens, True, elapsed)
        return response

    def _select_prompt(self, category: str, client_id: str) -> PromptSelection:
        if self._registry.config.enable_experiments:
            selection = self._experiments.select_for_category(category, client_id)
            if selection is not None:
                logger.info(
                    "Experiment %s assigned variant %s to %s",
                    selection.experiment_id,
                    selection.variant_id,
                    client_id,
                )
                return selection
        return self._registry.select(category)

    def _elapsed_ms(self, started: float) -> float:
        return round((self._clock() - started) * 1000, 1)

    def _record(
        self,
        endpoint: str,
        text: str,
        client_id: str,
        started: float,
        success: bool = True,
        error: str | None = None,
        **fields: Any,
    ) -> None:
        self._usage.record(
            UsageRecord(
                timestamp=self._usage.now(),
                endpoint=endpoint,
                success=success,
                error=error,
                article_length=len(text),
                response_time_ms=self._elapsed_ms(started),
                client_id=client_id,
                **fields,
            )
        )

    def _record_failure(
        self,
        endpoint: str,
        text: str,
        client_id: str,
        started: float,
        template: PromptTemplate,
        error: str,
    ) -> None:
        self._record(endpoint, text, client_id, started, success=False, error=error, prompt_id=template.id)
        self._track_performance(template, 0, 0, False, self._elapsed_ms(started))

    def _track_performance(
        self,
        template: PromptTemplate,
        input_tokens: int,
        output_tokens: int,
        success: bool,
        response_time_ms: float,
    ) -> None:
        if not self._registry.config.performance_tracking:
            return
        try:
            self._registry.update_performance(
                template.id,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                success=success,
                response_time_ms=response_time_ms,
            )
        except PromptNotFoundError:
            # Experiment variants may carry templates that were never registered
            logger.debug("No registered template %s to track", template.id)

    # Reporting and administration

    def cache_stats(self) -> dict[str, Any]:
        stats = self._cache.get_stats()
        return {
            "hits": stats.hits,
            "misses": stats.misses,
            "hitRate": f"{stats.hit_rate * 100:.1f}%",
            "size": stats.size,
            "estimatedCostSavings": round(stats.estimated_cost_savings, 4),
        }

    def usage_stats(self, period: str = "today") -> dict[str, Any]:
        """Usage for one period plus response-cache counters.

        Raises:
            ValidationError: If ``period`` is not today, week, month or all
        """
        stats = self._usage.get_period_stats(period)
        return {**stats.to_dict(), "period": period, "cache": self.cache_stats()}

    def usage_report(self, period: str = "today") -> str:
        """Markdown usage report for one period."""
        return generate_usage_report(self._usage.get_period_stats(period), self.cache_stats())

    def usage_summary(self) -> dict[str, Any]:
        summary = {name: stats.to_dict() for name, stats in self._usage.summary().items()}
        return {**summary, "cache": self.cache_stats()}

    def invalidate_cache(self, endpoint: str | None = None) -> int:
        """Drop cached responses for one endpoint or all of them.

        Raises:
            ValidationError: If ``endpoint`` is not an analysis endpoint
        """
        if endpoint is not None and endpoint not in ENDPOINTS:
            raise ValidationError(f"Unknown endpoint: {endpoint}. Use one of: {', '.join(ENDPOINTS)}")
        return self._cache.invalidate(endpoint)

    def prompt_stats(self) -> dict[str, Any]:
        return {
            "registry": self._registry.get_stats(),
            "config": {
                "experimentsEnabled": self._registry.config.enable_experiments,
                "cachingEnabled": self._registry.config.caching_enabled,
                "validationEnabled": self._registry.config.validation_enabled,
                "performanceTracking": self._registry.config.performance_tracking,
            },
            "templates": [t.summary() for t in self._registry.list_all()],
            "experiments": self._experiments.get_stats(),
        }

    def health(self) -> dict[str, Any]:
        cache_healthy = self._cache.is_healthy()
        return {
            "status": "healthy" if cache_healthy else "degraded",
            "cache": "healthy" if cache_healthy else "unhealthy",
            "cacheEnabled": self._cache.enabled,
            "providerConfigured": self._gateway.configured,
            "model": self._gateway.model,
        }
