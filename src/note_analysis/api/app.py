"""FastAPI application for note-analysis.

Routes delegate to AnalysisHandler; services live in app.state and are
built by the lifespan in ``api.dependencies``. Every AnalysisError is
rendered as ``{"error": message}`` with its status code and headers.
"""

import logging
from typing import Any

from fastapi import FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from note_analysis.api.dependencies import HandlerDep, create_lifespan
from note_analysis.config import Settings, settings
from note_analysis.dto import (
    AnalyzeArticleRequest,
    ArticleAnalysisResponse,
    CacheInvalidateResponse,
    EyeCatchResponse,
    FullAnalysisResponse,
    HashtagsResponse,
    HealthCheckResponse,
    TitlesResponse,
    UsageStatsResponse,
)
from note_analysis.exceptions import AnalysisError
from note_analysis.protocols import CompletionClient

logger = logging.getLogger(__name__)

APP_NAME = "note-analysis API"
APP_VERSION = "0.1.0"
APP_DESCRIPTION = "Cost-optimized Claude analysis of note.com articles"


async def analysis_error_handler(request: Request, exc: AnalysisError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
    return JSONResponse({"error": exc.client_message}, status_code=exc.status_code, headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected malformed request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        {"error": "Invalid request body. Send JSON like {\"articleText\": \"...\"}"},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        {"error": "An unexpected error occurred. Please try again."},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def create_app(
    config: Settings | None = None,
    completion_client: CompletionClient | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Settings to build services from. If None, uses settings.
        completion_client: Anthropic client override, used by tests.

    Returns:
        Configured FastAPI instance
    """
    config = config or settings
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        lifespan=create_lifespan(config, completion_client),
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )

    app.add_exception_handler(AnalysisError, analysis_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "description": APP_DESCRIPTION,
            "endpoints": {
                "analyze_article": "/api/analyze-article",
                "analyze_article_full": "/api/analyze-article-full",
                "generate_hashtags": "/api/generate-hashtags",
                "generate_eyecatch": "/api/generate-eyecatch",
                "generate_titles": "/api/generate-titles",
                "usage_stats": "/api/usage-stats",
                "prompts": "/api/prompts",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        """Health check: cache backend status and provider configuration."""
        return await handler.health()

    @app.post("/api/analyze-article", response_model=ArticleAnalysisResponse)
    async def analyze_article(
        body: AnalyzeArticleRequest, request: Request, handler: HandlerDep
    ) -> ArticleAnalysisResponse:
        """Generate 20 hashtags and an eye-catch image suggestion."""
        return await handler.analyze_article(body, request)

    @app.post("/api/analyze-article-full", response_model=FullAnalysisResponse)
    async def analyze_article_full(
        body: AnalyzeArticleRequest, request: Request, handler: HandlerDep
    ) -> FullAnalysisResponse:
        """Full analysis: titles, insights, eye-catch, hashtags, scores and suggestions."""
        return await handler.analyze_article_full(body, request)

    @app.post("/api/generate-hashtags", response_model=HashtagsResponse)
    async def generate_hashtags(
        body: AnalyzeArticleRequest, request: Request, handler: HandlerDep
    ) -> HashtagsResponse:
        """Generate 20 note.com hashtags."""
        return await handler.generate_hashtags(body, request)

    @app.post(
        "/api/generate-eyecatch", response_model=EyeCatchResponse, response_model_exclude_none=True
    )
    async def generate_eyecatch(
        body: AnalyzeArticleRequest, request: Request, handler: HandlerDep
    ) -> EyeCatchResponse:
        """Suggest an eye-catch image prompt, composition ideas and a summary."""
        return await handler.generate_eyecatch(body, request)

    @app.post("/api/generate-titles", response_model=TitlesResponse)
    async def generate_titles(
        body: AnalyzeArticleRequest, request: Request, handler: HandlerDep
    ) -> TitlesResponse:
        """Suggest up to five article titles."""
        return await handler.generate_titles(body, request)

    @app.get("/api/usage-stats", response_model=UsageStatsResponse)
    async def usage_stats(
        request: Request,
        handler: HandlerDep,
        period: str = Query("today", description="today, week, month or all"),
        response_format: str = Query("json", alias="format", description="json or markdown"),
    ):
        """Usage, token and cost statistics for a period."""
        return await handler.usage_stats(request, period, response_format)

    @app.post("/api/usage-stats/summary")
    async def usage_summary(request: Request, handler: HandlerDep) -> dict[str, Any]:
        """Usage statistics for every period at once."""
        return await handler.usage_summary(request)

    @app.delete("/api/cache", response_model=CacheInvalidateResponse)
    async def invalidate_cache(
        request: Request,
        handler: HandlerDep,
        endpoint: str | None = Query(None, description="Only drop responses of this endpoint"),
    ) -> CacheInvalidateResponse:
        """Invalidate cached analysis responses."""
        return await handler.invalidate_cache(request, endpoint)

    @app.get("/api/prompts")
    async def prompts(request: Request, handler: HandlerDep) -> dict[str, Any]:
        """Prompt registry and experiment statistics."""
        return await handler.prompt_stats(request)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "note_analysis.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
