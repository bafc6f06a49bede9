"""Prompt template domain entities."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

OutputType = Literal["text", "json", "structured"]
CacheStrategy = Literal["static", "dynamic", "none"]


@dataclass(frozen=True)
class OutputValidation:
    """Shape constraints for a template's output."""

    required: tuple[str, ...] = ()
    min_length: dict[str, int] = field(default_factory=dict)
    max_length: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class OutputFormat:
    """Expected output format of a template."""

    type: OutputType = "text"
    fields: tuple[str, ...] = ()
    schema: str | None = None
    validation: OutputValidation | None = None


@dataclass(frozen=True)
class PromptCacheConfig:
    """Prompt caching configuration for a template."""

    enabled: bool = True
    ttl: int = 300
    strategy: CacheStrategy = "static"


@dataclass(frozen=True)
class PromptExample:
    """A few-shot example attached to a template."""

    description: str
    input: dict[str, str]
    expected_output: str
    tags: tuple[str, ...] = ()


@dataclass
class PromptPerformance:
    """Running performance figures for a template.

    This is the only mutable part of a registered template.
    """

    avg_input_tokens: float = 0.0
    avg_output_tokens: float = 0.0
    success_rate: float = 1.0
    usage_count: int = 0
    avg_response_time: float = 0.0
    quality_score: float | None = None
    last_updated: str | None = None

    def record(
        self,
        input_tokens: int,
        output_tokens: int,
        success: bool,
        response_time_ms: float,
    ) -> None:
        """Fold one request into the running averages."""
        n = self.usage_count
        self.avg_input_tokens = (self.avg_input_tokens * n + input_tokens) / (n + 1)
        self.avg_output_tokens = (self.avg_output_tokens * n + output_tokens) / (n + 1)
        self.success_rate = (self.success_rate * n + (1.0 if success else 0.0)) / (n + 1)
        self.avg_response_time = (self.avg_response_time * n + response_time_ms) / (n + 1)
        self.usage_count = n + 1
        self.last_updated = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> dict[str, Any]:
        return {
            "avgInputTokens": round(self.avg_input_tokens, 2),
            "avgOutputTokens": round(self.avg_output_tokens, 2),
            "successRate": round(self.success_rate, 4),
            "usageCount": self.usage_count,
            "avgResponseTime": round(self.avg_response_time, 2),
            "qualityScore": self.quality_score,
            "lastUpdated": self.last_updated,
        }


@dataclass
class PromptMetadata:
    """Descriptive metadata for a template."""

    author: str
    created_at: str
    description: str
    tags: tuple[str, ...] = ()
    updated_at: str | None = None
    performance: PromptPerformance | None = None


@dataclass(frozen=True)
class PromptTemplate:
    """A versioned prompt template.

    Attributes:
        id: Unique identifier, e.g. ``hashtag-generation-v1-ja``
        category: Template family (hashtag, eyecatch, analysis, titles)
        version: Version label, e.g. ``v1``
        language: Language code, e.g. ``ja``
        system_prompt: System prompt text
        user_prompt_template: User prompt with ``{{variable}}`` placeholders
        variables: Names of the placeholders the user prompt expects
        metadata: Author, description, tags and performance
        output_format: Expected output format, if any
        caching: Prompt caching configuration, if any
        max_tokens: Default output token budget
        temperature: Sampling temperature
        examples: Optional few-shot examples
    """

    id: str
    category: str
    version: str
    language: str
    system_prompt: str
    user_prompt_template: str
    variables: tuple[str, ...]
    metadata: PromptMetadata
    output_format: OutputFormat | None = None
    caching: PromptCacheConfig | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    examples: tuple[PromptExample, ...] = ()

    @property
    def caching_enabled(self) -> bool:
        return self.caching is not None and self.caching.enabled

    def summary(self) -> dict[str, Any]:
        """Compact description used by listing endpoints."""
        return {
            "id": self.id,
            "category": self.category,
            "version": self.version,
            "language": self.language,
            "description": self.metadata.description,
            "tags": list(self.metadata.tags),
            "outputType": self.output_format.type if self.output_format else "text",
            "performance": (
                self.metadata.performance.to_dict() if self.metadata.performance else None
            ),
        }


@dataclass(frozen=True)
class PromptSelection:
    """The template chosen for a request and where it came from."""

    template: PromptTemplate
    from_experiment: bool = False
    experiment_id: str | None = None
    variant_id: str | None = None


@dataclass(frozen=True)
class RegistryConfig:
    """Registry behaviour toggles."""

    default_version: str = "v1"
    default_language: str = "ja"
    enable_experiments: bool = False
    caching_enabled: bool = True
    validation_enabled: bool = True
    performance_tracking: bool = True
    logging_enabled: bool = False

    @classmethod
    def for_environment(cls, env: str) -> "RegistryConfig":
        """Build the profile for ``development``, ``production`` or ``test``."""
        if env == "production":
            return cls(logging_enabled=False)
        if env == "test":
            return cls(enable_experiments=True, caching_enabled=False, logging_enabled=False)
        return cls(logging_enabled=True)
