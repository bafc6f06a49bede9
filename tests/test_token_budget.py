"""
Tests for token estimation, the cost model and output-token allocation.
"""

import pytest

from note_analysis.services import (
    DynamicTokenAllocator,
    calculate_cost,
    estimate_cost,
    estimate_cost_range,
    estimate_tokens,
    format_cost,
)
from note_analysis.services.token_budget import ENDPOINT_TOKEN_CONFIGS

ENDPOINTS = list(ENDPOINT_TOKEN_CONFIGS)


@pytest.fixture
def allocator():
    return DynamicTokenAllocator(
        max_tokens_per_request=4000,
        min_tokens_per_request=100,
        model="claude-sonnet-4-20250514",
    )


def test_estimate_tokens_empty():
    assert estimate_tokens("") == 0


def test_estimate_tokens_japanese_is_denser_than_english():
    """Japanese text costs more tokens per character than English."""
    assert estimate_tokens("あいうえおかきくけこ") == 5
    assert estimate_tokens("abcdefghij") == 4


def test_calculate_cost_sonnet():
    """1000 input and 500 output tokens at $3/$15 per million."""
    usage = calculate_cost(1000, 500, model="claude-sonnet-4-20250514")
    assert usage.input_cost == pytest.approx(0.003)
    assert usage.output_cost == pytest.approx(0.0075)
    assert usage.total_cost == pytest.approx(0.0105)
    assert usage.total_tokens == 1500


def test_calculate_cost_prompt_cache_tiers():
    """Cache writes and reads are priced at their own rates."""
    usage = calculate_cost(0, 0, cache_creation_input_tokens=1_000_000, cache_read_input_tokens=1_000_000)
    assert usage.cache_write_cost == pytest.approx(3.75)
    assert usage.cache_read_cost == pytest.approx(0.30)


def test_calculate_cost_unknown_model_uses_default_pricing():
    assert calculate_cost(1000, 500, model="not-a-model").total_cost == pytest.approx(0.0105)


def test_estimate_cost_range_shows_cache_savings():
    estimate = estimate_cost_range(10_000, 1_000)
    assert estimate["first_call"] == pytest.approx(estimate_cost(10_000, 1_000))
    assert estimate["cached_call"] < estimate["first_call"]
    assert estimate["savings_percent"] > 0


def test_format_cost():
    assert format_cost(0.00001) == "<$0.0001"
    assert format_cost(0.0105) == "$0.0105"
    assert format_cost(12.345) == "$12.35"


def test_allocation_follows_scaling_curve(allocator):
    """Short articles get the minimum, long ones the maximum."""
    endpoint = "/api/analyze-article"
    assert allocator.compute_max_tokens(0, endpoint) == 500
    assert allocator.compute_max_tokens(500, endpoint) == 625
    assert allocator.compute_max_tokens(1000, endpoint) == 750
    assert allocator.compute_max_tokens(1500, endpoint) == 875
    assert allocator.compute_max_tokens(2000, endpoint) == 1000
    assert allocator.compute_max_tokens(50_000, endpoint) == 1000


@pytest.mark.parametrize("endpoint", ENDPOINTS)
def test_allocation_is_monotone_and_bounded(allocator, endpoint):
    """Longer articles never get a smaller budget."""
    previous = 0
    for length in range(0, 6000, 37):
        tokens = allocator.compute_max_tokens(length, endpoint)
        assert allocator.floor <= tokens <= allocator.ceiling
        assert tokens >= previous
        previous = tokens


def test_ceiling_is_capped_by_global_limit():
    """The global max_tokens_per_request caps every endpoint."""
    allocator = DynamicTokenAllocator(max_tokens_per_request=2000, min_tokens_per_request=100)
    assert allocator.ceiling == 2000
    assert allocator.compute_max_tokens(10_000, "/api/analyze-article-full") == 2000


def test_ceiling_is_capped_by_model_output_limit():
    allocator = DynamicTokenAllocator(
        max_tokens_per_request=100_000,
        min_tokens_per_request=100,
        model="claude-3-haiku-20240307",
    )
    assert allocator.ceiling == 4096


def test_floor_never_exceeds_ceiling():
    allocator = DynamicTokenAllocator(max_tokens_per_request=200, min_tokens_per_request=1000)
    assert allocator.floor == allocator.ceiling == 200


def test_unknown_endpoint_uses_default_allocation(allocator):
    assert allocator.compute_max_tokens(100, "/api/unknown") == 300
    assert allocator.compute_max_tokens(10_000, "/api/unknown") == 1000


def test_estimate_savings(allocator):
    savings = allocator.estimate_savings(0, "/api/generate-hashtags")
    assert savings["fixed_tokens"] == 500
    assert savings["dynamic_tokens"] == 300
    assert savings["tokens_saved"] == 200
    assert savings["percent_saved"] == pytest.approx(40.0)
