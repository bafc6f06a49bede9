"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services built once in the lifespan and stored in app.state
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from note_analysis.config import Settings, get_redis_client
from note_analysis.entities import RegistryConfig
from note_analysis.handlers import AnalysisHandler
from note_analysis.prompts import default_experiments
from note_analysis.protocols import CacheStore, CompletionClient
from note_analysis.repositories import MemoryCacheStore, RedisCacheStore
from note_analysis.services import (
    AIGatewayService,
    AnalysisService,
    DynamicTokenAllocator,
    ExperimentManager,
    OutputNormalizer,
    PromptRegistry,
    RequestDeduplicator,
    ResponseCache,
    UsageTracker,
    create_rate_limiter,
)


logger = logging.getLogger(__name__)


def build_cache_store(config: Settings) -> CacheStore:
    """Create the response cache backend selected by CACHE_BACKEND."""
    if config.cache_backend == "redis":
        return RedisCacheStore.create(
            redis_client=get_redis_client(config),
            namespace=f"{config.cache_key_prefix}:",
        )
    return MemoryCacheStore.create(max_size=config.cache_max_size)


def build_analysis_service(
    config: Settings,
    completion_client: CompletionClient | None = None,
    cache_store: CacheStore | None = None,
) -> AnalysisService:
    """Wire every component of the request pipeline from settings.

    Args:
        config: Application settings.
        completion_client: Overrides the Anthropic client (tests pass a fake).
        cache_store: Overrides the configured cache backend.

    Returns:
        Fully wired AnalysisService
    """
    registry_config = RegistryConfig.for_environment(config.app_env)
    registry = PromptRegistry.create(config=registry_config)

    experiments = ExperimentManager()
    if registry_config.enable_experiments:
        for experiment in default_experiments():
            experiments.create_experiment(experiment)

    if completion_client is not None:
        gateway = AIGatewayService(client=completion_client, model=config.anthropic_model)
    else:
        gateway = AIGatewayService.create(config)

    return AnalysisService(
        gateway=gateway,
        response_cache=ResponseCache(
            store=cache_store or build_cache_store(config),
            ttl=config.cache_ttl,
            key_prefix=config.cache_key_prefix,
            enabled=config.enable_response_cache,
        ),
        rate_limiter=create_rate_limiter(
            strategy=config.rate_limit_strategy,
            limit=config.rate_limit_max_requests,
            window_ms=config.rate_limit_window_ms,
        ),
        deduplicator=RequestDeduplicator(
            window_ms=config.deduplication_window_ms,
            enabled=config.enable_request_deduplication,
        ),
        allocator=DynamicTokenAllocator(
            max_tokens_per_request=config.max_tokens_per_request,
            min_tokens_per_request=config.min_tokens_per_request,
            model=config.anthropic_model,
        ),
        registry=registry,
        experiments=experiments,
        usage_tracker=UsageTracker(
            max_records=config.usage_max_records,
            enabled=config.enable_usage_analytics,
            log_records=registry_config.logging_enabled,
        ),
        normalizer=OutputNormalizer(mode=config.output_validation_mode),
    )


def get_handler(request: Request) -> AnalysisHandler:
    """Dependency injection for AnalysisHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The AnalysisHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "analysis_handler", None)
    if handler is None:
        raise RuntimeError("AnalysisHandler not initialized. Check lifespan setup.")
    return handler


def create_lifespan(config: Settings, completion_client: CompletionClient | None = None):
    """Build the lifespan context manager for an application.

    Args:
        config: Settings the services are built from
        completion_client: Optional Anthropic client override

    Returns:
        An async context manager usable as FastAPI(lifespan=...)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize all layers and store them in app.state.

        Cleanup:
            Removes all services from app.state on shutdown
        """
        analysis_service = build_analysis_service(config, completion_client)
        analysis_handler = AnalysisHandler(
            analysis_service=analysis_service,
            access_token=config.api_access_token,
        )

        app.state.analysis_service = analysis_service
        app.state.analysis_handler = analysis_handler

        health = analysis_service.health()
        logger.info(
            "Analysis service initialized (env=%s, model=%s, cache=%s/%s, provider configured=%s)",
            config.app_env,
            health["model"],
            config.cache_backend,
            health["cache"],
            health["providerConfigured"],
        )

        yield

        del app.state.analysis_handler
        del app.state.analysis_service
        logger.info("Analysis service shut down")

    return lifespan


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[AnalysisHandler, Depends(get_handler)]
