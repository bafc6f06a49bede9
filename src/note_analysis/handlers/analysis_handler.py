"""HTTP handlers for analysis operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like client identity, access tokens and
response formats; domain errors propagate as AnalysisError and are
rendered by the application's exception handlers.
"""

import hmac
import logging

from fastapi import Request
from fastapi.responses import PlainTextResponse

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
from note_analysis.exceptions import UnauthorizedError, ValidationError
from note_analysis.services import AnalysisService
from note_analysis.services.analysis_service import (
    ANALYZE_ARTICLE,
    ANALYZE_ARTICLE_FULL,
    GENERATE_EYECATCH,
    GENERATE_HASHTAGS,
    GENERATE_TITLES,
)

logger = logging.getLogger(__name__)

ANONYMOUS_CLIENT = "anonymous"
RESPONSE_FORMATS = ("json", "markdown")


def get_client_id(request: Request) -> str:
    """Identify the caller for rate limiting and de-duplication.

    Uses the first X-Forwarded-For entry, then X-Real-IP, then the socket
    peer address.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client is not None and request.client.host:
        return request.client.host
    return ANONYMOUS_CLIENT


class AnalysisHandler:
    """HTTP handlers for analysis, usage and cache administration.

    Example:
        ```python
        handler = AnalysisHandler(analysis_service=service, access_token=None)

        @app.post("/api/analyze-article", response_model=ArticleAnalysisResponse)
        async def analyze_article(body: AnalyzeArticleRequest, request: Request):
            return await handler.analyze_article(body, request)
        ```
    """

    def __init__(self, analysis_service: AnalysisService, access_token: str | None = None) -> None:
        """Initialize the analysis handler.

        Args:
            analysis_service: The request pipeline (required).
            access_token: When set, protected routes require it as a bearer
                token or in the X-Access-Token header.
        """
        self._service = analysis_service
        self._access_token = access_token

    def authorize(self, request: Request) -> None:
        """Check the shared access token, if one is configured.

        Raises:
            UnauthorizedError: If the token is missing or wrong
        """
        if not self._access_token:
            return

        supplied = request.headers.get("x-access-token")
        authorization = request.headers.get("authorization", "")
        if not supplied and authorization.lower().startswith("bearer "):
            supplied = authorization[len("bearer ") :].strip()

        if not supplied or not hmac.compare_digest(supplied, self._access_token):
            logger.warning("Unauthorized access attempt from %s", get_client_id(request))
            raise UnauthorizedError("認証が必要です。(Authentication required.)")

    async def analyze_article(
        self, body: AnalyzeArticleRequest, request: Request
    ) -> ArticleAnalysisResponse:
        """Handle POST /api/analyze-article requests."""
        self.authorize(request)
        result = await self._service.analyze(ANALYZE_ARTICLE, body.article_text, get_client_id(request))
        return ArticleAnalysisResponse.model_validate(result)

    async def analyze_article_full(
        self, body: AnalyzeArticleRequest, request: Request
    ) -> FullAnalysisResponse:
        """Handle POST /api/analyze-article-full requests."""
        self.authorize(request)
        result = await self._service.analyze(
            ANALYZE_ARTICLE_FULL, body.article_text, get_client_id(request)
        )
        return FullAnalysisResponse.model_validate(result)

    async def generate_hashtags(self, body: AnalyzeArticleRequest, request: Request) -> HashtagsResponse:
        """Handle POST /api/generate-hashtags requests."""
        self.authorize(request)
        result = await self._service.analyze(GENERATE_HASHTAGS, body.article_text, get_client_id(request))
        return HashtagsResponse.model_validate(result)

    async def generate_eyecatch(self, body: AnalyzeArticleRequest, request: Request) -> EyeCatchResponse:
        """Handle POST /api/generate-eyecatch requests."""
        self.authorize(request)
        result = await self._service.analyze(GENERATE_EYECATCH, body.article_text, get_client_id(request))
        return EyeCatchResponse.model_validate(result)

    async def generate_titles(self, body: AnalyzeArticleRequest, request: Request) -> TitlesResponse:
        self.authorize(request)
        result = await self._service.analyze(GENERATE_TITLES, body.article_text, get_client_id(request))
        return TitlesResponse.model_validate(result)

    async def usage_stats(
        self, request: Request, period: str, response_format: str
    ) -> UsageStatsResponse | PlainTextResponse:
        """Handle GET /api/usage-stats requests.

        Raises:
            ValidationError: If the period or format is unknown
        """
        self.authorize(request)
        if response_format not in RESPONSE_FORMATS:
            raise ValidationError("Invalid format. Use: json or markdown")

        if response_format == "markdown":
            return PlainTextResponse(
                self._service.usage_report(period),
                media_type="text/markdown; charset=utf-8",
                headers={"Content-Disposition": f'attachment; filename="usage-report-{period}.md"'},
            )
        return UsageStatsResponse.model_validate(self._service.usage_stats(period))

    async def usage_summary(self, request: Request) -> dict:
        """Handle POST /api/usage-stats/summary requests."""
        self.authorize(request)
        return self._service.usage_summary()

    async def invalidate_cache(self, request: Request, endpoint: str | None) -> CacheInvalidateResponse:
        """Handle DELETE /api/cache requests."""
        self.authorize(request)
        deleted = self._service.invalidate_cache(endpoint)
        target = endpoint or "all endpoints"
        return CacheInvalidateResponse(
            success=True,
            deleted=deleted,
            endpoint=endpoint,
            message=f"Invalidated {deleted} cached responses for {target}",
        )

    async def prompt_stats(self, request: Request) -> dict:
        """Handle GET /api/prompts requests."""
        self.authorize(request)
        return self._service.prompt_stats()

    async def health(self) -> HealthCheckResponse:
        return HealthCheckResponse.model_validate(self._service.health())
