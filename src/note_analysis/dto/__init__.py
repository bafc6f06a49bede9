"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import AnalyzeArticleRequest
from .responses import (
    AnalysisMetadata,
    ArticleAnalysisResponse,
    CacheInvalidateResponse,
    CacheSummary,
    EyeCatch,
    EyeCatchImage,
    EyeCatchResponse,
    EyeCatchSuggestion,
    FullAnalysisResponse,
    HashtagsResponse,
    HealthCheckResponse,
    Insights,
    TitlesResponse,
    UsageStatsResponse,
)

__all__ = [
    "AnalyzeArticleRequest",
    "AnalysisMetadata",
    "ArticleAnalysisResponse",
    "CacheInvalidateResponse",
    "CacheSummary",
    "EyeCatch",
    "EyeCatchImage",
    "EyeCatchResponse",
    "EyeCatchSuggestion",
    "FullAnalysisResponse",
    "HashtagsResponse",
    "HealthCheckResponse",
    "Insights",
    "TitlesResponse",
    "UsageStatsResponse",
]
