"""Single entry point for Anthropic completions.

The gateway owns request validation, prompt-cache marking of the system
prompt, cost accounting and the mapping of SDK errors onto the
``note_analysis.exceptions`` taxonomy.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import anthropic

from note_analysis.config import Settings, settings
from note_analysis.entities import TokenUsage
from note_analysis.exceptions import (
    ConfigurationError,
    ProviderError,
    ProviderRateLimitError,
    ValidationError,
)
from note_analysis.models import get_model_config
from note_analysis.protocols import CompletionClient
from note_analysis.services.prompt_builder import BuiltPrompt, build_system_blocks
from note_analysis.services.token_budget import calculate_cost, format_cost

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionConfig:
    model: str
    max_tokens: int
    temperature: float = 0.7
    use_cache: bool = True


@dataclass(frozen=True)
class CompletionRequest:
    system_prompt: str
    messages: list[dict[str, Any]]
    config: CompletionConfig

    @classmethod
    def from_prompt(
        cls,
        prompt: BuiltPrompt,
        model: str,
        max_tokens: int | None = None,
    ) -> "CompletionRequest":
        """Wrap a rendered prompt, optionally overriding its token budget."""
        return cls(
            system_prompt=prompt.system_prompt,
            messages=prompt.messages,
            config=CompletionConfig(
                model=model,
                max_tokens=max_tokens or prompt.max_tokens,
                temperature=0.7 if prompt.temperature is None else prompt.temperature,
                use_cache=prompt.use_cache,
            ),
        )


@dataclass(frozen=True)
class CompletionResponse:
    content: str
    usage: TokenUsage
    metadata: dict[str, Any] = field(default_factory=dict)


class AIGatewayService:
    """Async facade over ``anthropic.AsyncAnthropic``.

    A gateway without a client is legal: the application still starts and
    serves cached responses, and only a real provider call fails with
    ConfigurationError.
    """

    def __init__(
        self,
        client: CompletionClient | None,
        model: str | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            client: Anthropic-compatible async client, or None when no key is configured.
            model: Default model id. Defaults to settings.
        """
        self._client = client
        self._model = model or settings.anthropic_model

    @classmethod
    def create(cls, config: Settings | None = None) -> "AIGatewayService":
        """Factory method building an AsyncAnthropic client from settings.

        Args:
            config: Settings to read the key, timeout and retries from. If None, uses settings.

        Returns:
            Configured AIGatewayService instance
        """
        config = config or settings
        client = None
        if config.provider_configured:
            client = anthropic.AsyncAnthropic(
                api_key=config.anthropic_api_key,
                timeout=config.provider_timeout_seconds,
                max_retries=config.provider_max_retries,
            )
        else:
            logger.warning("ANTHROPIC_API_KEY is not set; provider calls will fail")
        return cls(client=client, model=config.anthropic_model)

    @property
    def configured(self) -> bool:
        return self._client is not None

    @property
    def model(self) -> str:
        return self._model

    def validate_request(self, request: CompletionRequest) -> None:
        """Raise ValidationError if the request cannot be sent as-is."""
        model_config = get_model_config(request.config.model)
        if model_config is None:
            raise ValidationError(f"Unknown model: {request.config.model}")

        if not 1 <= request.config.max_tokens <= model_config.max_output_tokens:
            raise ValidationError(
                f"max_tokens must be between 1 and {model_config.max_output_tokens}, "
                f"got {request.config.max_tokens}"
            )

        if not 0 <= request.config.temperature <= 1:
            raise ValidationError(
                f"temperature must be between 0 and 1, got {request.config.temperature}"
            )

        if not request.messages:
            raise ValidationError("At least one message is required")

    async def generate_completion(self, request: CompletionRequest) -> CompletionResponse:
        """Send one completion request and price the result.

        Raises:
            ConfigurationError: If no API key is configured
            ValidationError: If the request parameters are out of range
            ProviderRateLimitError: If the provider answers 429
            ProviderError: For any other provider failure
        """
        if self._client is None:
            raise ConfigurationError("API key is not configured")

        self.validate_request(request)
        config = request.config

        started = time.perf_counter()
        try:
            message = await self._client.messages.create(
                model=config.model,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                system=build_system_blocks(request.system_prompt, config.use_cache),
                messages=request.messages,
            )
        except anthropic.RateLimitError as e:
            retry_after = _retry_after(e)
            logger.warning("Provider rate limit hit (retry after %s)", retry_after)
            raise ProviderRateLimitError(
                "The AI provider is rate limiting requests. Please try again later.",
                retry_after=retry_after,
            ) from e
        except anthropic.APIStatusError as e:
            logger.error("Provider returned HTTP %d: %s", e.status_code, e.message)
            raise ProviderError(f"API Error: {e.message}", status_code=e.status_code) from e
        except anthropic.APIError as e:
            logger.error("Provider request failed: %s", e)
            raise ProviderError("Failed to reach the AI provider") from e
        except Exception as e:
            logger.exception("Provider client raised %s", type(e).__name__)
            raise ProviderError("Failed to reach the AI provider") from e
        elapsed_ms = (time.perf_counter() - started) * 1000

        if not message.content or message.content[0].type != "text":
            raise ProviderError("Unexpected response type from Claude")

        usage = calculate_cost(
            input_tokens=message.usage.input_tokens or 0,
            output_tokens=message.usage.output_tokens or 0,
            cache_creation_input_tokens=getattr(message.usage, "cache_creation_input_tokens", 0) or 0,
            cache_read_input_tokens=getattr(message.usage, "cache_read_input_tokens", 0) or 0,
            model=config.model,
        )
        _log_usage(usage, elapsed_ms)

        return CompletionResponse(
            content=message.content[0].text,
            usage=usage,
            metadata={
                "finish_reason": message.stop_reason,
                "model": message.model,
                "message_id": message.id,
                "latency_ms": round(elapsed_ms, 1),
                "cache_status": _cache_status(usage),
            },
        )


def _retry_after(error: anthropic.APIStatusError) -> int | None:
    value = error.response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return max(1, int(float(value)))
    except (ValueError, OverflowError):
        return None


def _cache_status(usage: TokenUsage) -> str:
    if usage.cache_creation_input_tokens > 0:
        return "CACHE_CREATED"
    if usage.cache_read_input_tokens > 0:
        return "CACHE_HIT"
    return "NO_CACHE"


def _log_usage(usage: TokenUsage, elapsed_ms: float) -> None:
    cached = usage.cache_read_input_tokens
    hit_rate = cached / (cached + usage.input_tokens) * 100 if cached else 0.0
    logger.info(
        "Provider usage: in=%d out=%d cache_write=%d cache_read=%d (%.1f%% cached) "
        "cost=%s [input %s, output %s, cache write %s, cache read %s] status=%s %.0fms",
        usage.input_tokens,
        usage.output_tokens,
        usage.cache_creation_input_tokens,
        cached,
        hit_rate,
        format_cost(usage.total_cost),
        format_cost(usage.input_cost),
        format_cost(usage.output_cost),
        format_cost(usage.cache_write_cost),
        format_cost(usage.cache_read_cost),
        _cache_status(usage),
        elapsed_ms,
    )
