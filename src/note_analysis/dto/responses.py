"""Response DTOs for API endpoints.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisMetadata(CamelModel):
    """``_metadata`` block attached to every analysis response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    cached: bool = Field(..., description="Whether the response was served without a provider call")
    deduplication: bool = Field(False, description="Whether it was replayed from the dedup store")
    estimated_cost: float = Field(0.0, description="Pre-call cost estimate in USD")
    actual_cost: float = Field(0.0, description="Cost of this request in USD")
    tokens_used: int = Field(0, description="Input plus output tokens billed for this request")
    request_hash: str | None = Field(None, description="Fingerprint of endpoint and normalized article")
    prompt_id: str | None = Field(None, description="Template that produced the analysis")
    response_time_ms: float = Field(0.0, description="Server-side processing time")
    cache_status: str = Field("miss", description="miss, hit or dedup")


class EyeCatch(CamelModel):
    image_prompt: str
    composition_ideas: list[str] = Field(default_factory=list, max_length=5)
    summary: str = Field("", max_length=100)


class ArticleAnalysisResponse(CamelModel):
    """Response DTO for POST /api/analyze-article."""

    hashtags: list[str] = Field(..., min_length=20, max_length=20)
    eye_catch: EyeCatch
    metadata: AnalysisMetadata = Field(..., alias="_metadata")


class HashtagsResponse(CamelModel):
    """Response DTO for POST /api/generate-hashtags."""

    hashtags: list[str] = Field(..., min_length=20, max_length=20)
    metadata: AnalysisMetadata = Field(..., alias="_metadata")


class EyeCatchSuggestion(EyeCatch):
    """Eye-catch block of /api/generate-eyecatch; JSON prompts add palette and style."""

    color_palette: list[str] | None = Field(None, max_length=4)
    mood: str | None = None
    style: str | None = None


class EyeCatchResponse(CamelModel):
    """Response DTO for POST /api/generate-eyecatch."""

    eye_catch: EyeCatchSuggestion
    metadata: AnalysisMetadata = Field(..., alias="_metadata")


class TitlesResponse(CamelModel):
    """Response DTO for POST /api/generate-titles."""

    titles: list[str] = Field(..., min_length=1, max_length=5)
    metadata: AnalysisMetadata = Field(..., alias="_metadata")


class Insights(CamelModel):
    what_you_learn: list[str] = Field(default_factory=list, max_length=5)
    benefits: list[str] = Field(default_factory=list, max_length=5)
    recommended_for: list[str] = Field(default_factory=list, max_length=5)
    one_liner: str = ""


class EyeCatchImage(CamelModel):
    main_prompt: str
    composition_ideas: list[str] = Field(default_factory=list, max_length=3)
    color_palette: list[str] = Field(default_factory=list, max_length=4)
    mood: str = ""
    style: str = ""
    summary: str = Field("", max_length=100)


class FullAnalysisResponse(CamelModel):
    """Response DTO for POST /api/analyze-article-full.

    The extended sections are passed through as normalized dictionaries.
    """

    suggested_titles: list[str] = Field(default_factory=list, max_length=5)
    insights: Insights
    eye_catch_image: EyeCatchImage
    hashtags: list[str] = Field(..., min_length=20, max_length=20)
    virality_score: dict[str, Any] = Field(default_factory=dict)
    reading_time: dict[str, str] = Field(default_factory=dict)
    rewrite_suggestions: dict[str, Any] = Field(default_factory=dict)
    series_ideas: list[dict[str, str]] = Field(default_factory=list)
    monetization: dict[str, Any] = Field(default_factory=dict)
    emotional_analysis: dict[str, Any] = Field(default_factory=dict)
    metadata: AnalysisMetadata = Field(..., alias="_metadata")


class CacheSummary(CamelModel):
    hits: int
    misses: int
    hit_rate: str = Field(..., description="Hit rate as a percentage string, e.g. '42.0%'")
    size: int
    estimated_cost_savings: float


class UsageStatsResponse(CamelModel):
    """Response DTO for GET /api/usage-stats."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    period: str
    total_requests: int = Field(..., ge=0)
    successful_requests: int = Field(..., ge=0)
    failed_requests: int = Field(..., ge=0)
    total_tokens: int = Field(..., ge=0)
    total_cost: float = Field(..., ge=0)
    cache: CacheSummary


class CacheInvalidateResponse(CamelModel):
    """Response DTO for DELETE /api/cache."""

    success: bool
    deleted: int = Field(..., ge=0)
    endpoint: str | None = None
    message: str


class HealthCheckResponse(CamelModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Overall status: healthy or degraded")
    cache: str = Field(..., description="Cache backend status")
    cache_enabled: bool
    provider_configured: bool = Field(..., description="Whether ANTHROPIC_API_KEY is set")
    model: str
