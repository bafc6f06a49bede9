"""Request DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AnalyzeArticleRequest(BaseModel):
    """Request DTO shared by the analysis endpoints.

    ``articleText`` is deliberately typed loosely: a missing or non-string
    value is reported by the article validator with a 400, not by Pydantic.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    article_text: Any = Field(None, description="The note.com article text to analyze")
