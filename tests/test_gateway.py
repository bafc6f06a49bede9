"""
Tests for the Anthropic gateway.
"""

from types import SimpleNamespace

import anthropic
import httpx
import pytest

from conftest import FakeCompletionClient, make_message, make_settings
from note_analysis.exceptions import (
    ConfigurationError,
    ProviderError,
    ProviderRateLimitError,
    ValidationError,
)
from note_analysis.prompts import HASHTAG_V1_JA
from note_analysis.services import (
    AIGatewayService,
    CompletionConfig,
    CompletionRequest,
    PromptBuilder,
)

MODEL = "claude-sonnet-4-20250514"
API_URL = "https://api.anthropic.com/v1/messages"


def make_request(**config) -> CompletionRequest:
    values = {"model": MODEL, "max_tokens": 500}
    values.update(config)
    return CompletionRequest(
        system_prompt="system",
        messages=[{"role": "user", "content": "hello"}],
        config=CompletionConfig(**values),
    )


def status_error(cls, status_code: int, headers: dict | None = None):
    """Build an anthropic status error around a fake HTTP response."""
    response = httpx.Response(
        status_code,
        headers=headers or {},
        request=httpx.Request("POST", API_URL),
    )
    return cls("provider said no", response=response, body=None)


@pytest.fixture
def gateway(fake_client):
    return AIGatewayService(client=fake_client, model=MODEL)


@pytest.mark.asyncio
async def test_generate_completion_returns_text_and_cost(gateway, fake_client):
    """Text content, priced usage and metadata are returned."""
    fake_client.messages.text = "#AI"

    response = await gateway.generate_completion(make_request())

    assert response.content == "#AI"
    assert response.usage.input_tokens == 1000
    assert response.usage.output_tokens == 500
    assert response.usage.total_cost == pytest.approx(0.0105)
    assert response.metadata["finish_reason"] == "end_turn"
    assert response.metadata["model"] == MODEL
    assert response.metadata["cache_status"] == "NO_CACHE"


@pytest.mark.asyncio
async def test_request_parameters_are_forwarded(gateway, fake_client):
    """The system prompt is sent as a cacheable block."""
    await gateway.generate_completion(make_request(temperature=0.3))

    call = fake_client.messages.calls[0]
    assert call["model"] == MODEL
    assert call["max_tokens"] == 500
    assert call["temperature"] == 0.3
    assert call["system"] == [{"type": "text", "text": "system", "cache_control": {"type": "ephemeral"}}]
    assert call["messages"] == [{"role": "user", "content": "hello"}]


@pytest.mark.asyncio
async def test_prompt_cache_status(gateway, fake_client):
    fake_client.messages.message = make_message("ok", cache_read_input_tokens=2000)
    response = await gateway.generate_completion(make_request(use_cache=True))
    assert response.metadata["cache_status"] == "CACHE_HIT"
    assert response.usage.cache_read_cost == pytest.approx(0.0006)

    fake_client.messages.message = make_message("ok", cache_creation_input_tokens=2000)
    response = await gateway.generate_completion(make_request(use_cache=True))
    assert response.metadata["cache_status"] == "CACHE_CREATED"


@pytest.mark.asyncio
async def test_missing_client_raises_configuration_error():
    gateway = AIGatewayService(client=None, model=MODEL)
    assert not gateway.configured
    with pytest.raises(ConfigurationError, match="API key is not configured"):
        await gateway.generate_completion(make_request())


@pytest.mark.parametrize(
    "config, message",
    [
        ({"model": "gpt-4"}, "Unknown model"),
        ({"max_tokens": 0}, "max_tokens"),
        ({"max_tokens": 100_000}, "max_tokens"),
        ({"temperature": 1.5}, "temperature"),
    ],
)
@pytest.mark.asyncio
async def test_invalid_requests_are_rejected(gateway, fake_client, config, message):
    with pytest.raises(ValidationError, match=message):
        await gateway.generate_completion(make_request(**config))
    assert fake_client.messages.calls == []


def test_empty_messages_are_rejected(gateway):
    request = CompletionRequest(system_prompt="s", messages=[], config=CompletionConfig(MODEL, 100))
    with pytest.raises(ValidationError, match="At least one message"):
        gateway.validate_request(request)


@pytest.mark.asyncio
async def test_provider_rate_limit_is_mapped(gateway, fake_client):
    """A provider 429 keeps its Retry-After hint."""
    fake_client.messages.error = status_error(anthropic.RateLimitError, 429, {"retry-after": "12"})

    with pytest.raises(ProviderRateLimitError) as excinfo:
        await gateway.generate_completion(make_request())

    assert excinfo.value.status_code == 429
    assert excinfo.value.retry_after == 12
    assert excinfo.value.headers == {"Retry-After": "12"}


@pytest.mark.asyncio
async def test_provider_status_error_keeps_status(gateway, fake_client):
    fake_client.messages.error = status_error(anthropic.InternalServerError, 529)

    with pytest.raises(ProviderError) as excinfo:
        await gateway.generate_completion(make_request())

    assert excinfo.value.status_code == 529
    assert excinfo.value.message == "API Error: provider said no"


@pytest.mark.asyncio
async def test_connection_error_is_mapped(gateway, fake_client):
    fake_client.messages.error = anthropic.APIConnectionError(request=httpx.Request("POST", API_URL))

    with pytest.raises(ProviderError) as excinfo:
        await gateway.generate_completion(make_request())

    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "Failed to reach the AI provider"


@pytest.mark.asyncio
async def test_client_exception_is_mapped_without_status(gateway, fake_client):
    fake_client.messages.error = TimeoutError("read timed out")

    with pytest.raises(ProviderError) as excinfo:
        await gateway.generate_completion(make_request())

    assert excinfo.value.status_code == 500
    assert excinfo.value.message == "Failed to reach the AI provider"
    assert isinstance(excinfo.value.__cause__, TimeoutError)


@pytest.mark.asyncio
@pytest.mark.parametrize("header", ["inf", "1e999", "soon"])
async def test_unusable_retry_after_is_dropped(gateway, fake_client, header):
    """A provider 429 stays a 429 even when Retry-After cannot be read."""
    fake_client.messages.error = status_error(anthropic.RateLimitError, 429, {"retry-after": header})

    with pytest.raises(ProviderRateLimitError) as excinfo:
        await gateway.generate_completion(make_request())

    assert excinfo.value.status_code == 429
    assert excinfo.value.retry_after is None
    assert excinfo.value.headers == {}


@pytest.mark.asyncio
async def test_non_text_content_is_rejected(gateway, fake_client):
    message = make_message("ignored")
    message.content = [SimpleNamespace(type="tool_use", id="tool_1")]
    fake_client.messages.message = message

    with pytest.raises(ProviderError, match="Unexpected response type"):
        await gateway.generate_completion(make_request())


def test_completion_request_from_prompt():
    """A rendered prompt keeps its settings unless max_tokens is overridden."""
    built = PromptBuilder().build(HASHTAG_V1_JA, {"articleText": "本文"})

    request = CompletionRequest.from_prompt(built, MODEL, max_tokens=321)

    assert request.config.max_tokens == 321
    assert request.config.temperature == 0.7
    assert request.config.use_cache is True
    assert request.messages == built.messages


def test_create_without_api_key():
    gateway = AIGatewayService.create(make_settings(anthropic_api_key=None))
    assert not gateway.configured
    assert gateway.model == MODEL


def test_create_with_api_key():
    gateway = AIGatewayService.create(make_settings())
    assert gateway.configured


def test_fake_client_is_accepted():
    assert AIGatewayService(client=FakeCompletionClient()).configured
