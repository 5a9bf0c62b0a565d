"""
Unit tests for pricing calculations.

Tests cost accuracy, model lookup and the pricing fetcher lifecycle.
"""

from decimal import Decimal

import httpx
import pytest

from cc_usage.core.pricing import (
    OFFLINE_PRICING,
    ModelPricing,
    PricingFetcher,
    PricingTable,
    calculate_cost_from_tokens,
    parse_litellm_pricing,
)
from cc_usage.core.token_counter import TokenUsage


SONNET = "claude-sonnet-4-20250514"
OPUS = "claude-opus-4-20250514"

LITELLM_PAYLOAD = {
    "sample_spec": {"input_cost_per_token": "see docs"},
    "claude-sonnet-4-20250514": {
        "input_cost_per_token": 3e-06,
        "output_cost_per_token": 1.5e-05,
        "cache_creation_input_token_cost": 3.75e-06,
        "cache_read_input_token_cost": 3e-07,
    },
    "gpt-4o-mini": {
        "input_cost_per_token": 1.5e-07,
        "output_cost_per_token": 6e-07,
    },
    "text-embedding-3-small": {"input_cost_per_token": 2e-08},
}


def _mock_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestTokenUsage:
    """Test TokenUsage dataclass."""

    def test_total_tokens_calculation(self):
        """Verify total_tokens sums all four categories."""
        usage = TokenUsage(
            input_tokens=100, output_tokens=50,
            cache_creation_tokens=20, cache_read_tokens=10
        )
        assert usage.total_tokens == 180

    def test_defaults_to_zero(self):
        """Verify missing counts default to zero."""
        assert TokenUsage().total_tokens == 0

    def test_addition(self):
        """Verify usages add field by field."""
        total = TokenUsage(1, 2, 3, 4) + TokenUsage(10, 20, 30, 40)
        assert total == TokenUsage(11, 22, 33, 44)

    def test_negative_tokens_rejected(self):
        """Verify negative counts raise ValueError."""
        with pytest.raises(ValueError, match="input_tokens cannot be negative"):
            TokenUsage(input_tokens=-1)


class TestPricingTable:
    """Test pricing table lookup."""

    def test_get_supported_model(self):
        """Verify pricing retrieval for an exact model name."""
        pricing = OFFLINE_PRICING.get_pricing(SONNET)
        assert pricing.input_cost_per_mtok == Decimal("3.00")
        assert pricing.output_cost_per_mtok == Decimal("15.00")
        assert pricing.cache_creation_cost_per_mtok == Decimal("3.75")
        assert pricing.cache_read_cost_per_mtok == Decimal("0.30")

    def test_unknown_model_returns_none(self):
        """Verify unknown models are reported as not found, not raised."""
        assert OFFLINE_PRICING.get_pricing("unknown-model") is None

    def test_empty_model_returns_none(self):
        """Verify an empty model name never matches."""
        assert OFFLINE_PRICING.get_pricing("") is None

    def test_provider_prefixed_variant(self):
        """Verify lookup falls back to the anthropic/ prefixed name."""
        table = PricingTable({
            "anthropic/claude-x": ModelPricing(Decimal("1"), Decimal("2"))
        })
        assert table.get_pricing("claude-x").output_cost_per_mtok == Decimal("2")

    def test_substring_match(self):
        """Verify a partial name matches case-insensitively."""
        table = PricingTable({
            "claude-3-opus-20240229": ModelPricing(Decimal("15"), Decimal("75"))
        })
        assert table.get_pricing("Claude-3-Opus") is not None


class TestCostCalculation:
    """Test cost calculation accuracy."""

    def test_input_and_output_cost(self):
        """Verify per-million scaling for input and output tokens."""
        usage = TokenUsage(input_tokens=1000, output_tokens=500)
        cost = calculate_cost_from_tokens(usage, OFFLINE_PRICING.get_pricing(SONNET))
        # 1000 * $3 + 500 * $15 = $10,500 per million tokens
        assert cost == pytest.approx(0.0105)

    def test_cache_tokens_included(self):
        """Verify cache write and read tokens are priced at their own rates."""
        usage = TokenUsage(
            input_tokens=1000, output_tokens=500,
            cache_creation_tokens=200, cache_read_tokens=100
        )
        cost = calculate_cost_from_tokens(usage, OFFLINE_PRICING.get_pricing(SONNET))
        # 3000 + 7500 + 750 + 30 = 11280 per million
        assert cost == pytest.approx(0.01128)

    def test_opus_rates(self):
        """Verify Opus pricing across all categories."""
        usage = TokenUsage(
            input_tokens=4000, output_tokens=1000,
            cache_creation_tokens=2000, cache_read_tokens=8000
        )
        cost = calculate_cost_from_tokens(usage, OFFLINE_PRICING.get_pricing(OPUS))
        assert cost == pytest.approx(0.1845)

    def test_zero_tokens_cost(self):
        """Verify zero tokens cost nothing."""
        assert calculate_cost_from_tokens(TokenUsage(), OFFLINE_PRICING.get_pricing(SONNET)) == 0.0

    def test_no_rounding(self):
        """Verify tiny costs are not rounded away."""
        usage = TokenUsage(input_tokens=1)
        cost = calculate_cost_from_tokens(usage, OFFLINE_PRICING.get_pricing(SONNET))
        assert cost == pytest.approx(0.000003)


class TestParseLiteLLMPricing:
    """Test conversion of the LiteLLM price list."""

    def test_converts_per_token_to_per_million(self):
        """Verify per-token rates become per-million Decimal rates."""
        table = parse_litellm_pricing(LITELLM_PAYLOAD)
        pricing = table.prices[SONNET]
        assert pricing.input_cost_per_mtok == Decimal("3.000000")
        assert pricing.output_cost_per_mtok == Decimal("15.00000")
        assert pricing.cache_read_cost_per_mtok == Decimal("0.3000000")

    def test_missing_cache_rates_default_to_zero(self):
        """Verify models without cache pricing get zero cache rates."""
        table = parse_litellm_pricing(LITELLM_PAYLOAD)
        assert table.prices["gpt-4o-mini"].cache_creation_cost_per_mtok == Decimal("0")

    def test_skips_incomplete_entries(self):
        """Verify entries without numeric input and output rates are ignored."""
        table = parse_litellm_pricing(LITELLM_PAYLOAD)
        assert "sample_spec" not in table.prices
        assert "text-embedding-3-small" not in table.prices


class TestPricingFetcher:
    """Test pricing fetcher loading and lifecycle."""

    def test_offline_uses_snapshot_without_network(self):
        """Verify offline mode never issues a request."""
        def handler(request):
            raise AssertionError("network must not be used offline")

        with PricingFetcher(offline=True, client=_mock_client(handler)) as fetcher:
            assert fetcher.ensure_pricing_loaded() is OFFLINE_PRICING

    def test_fetches_once_per_run(self):
        """Verify the price list is requested a single time."""
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(200, json=LITELLM_PAYLOAD)

        with PricingFetcher(client=_mock_client(handler)) as fetcher:
            usage = TokenUsage(input_tokens=1000, output_tokens=500)
            first = fetcher.calculate_cost_from_tokens(usage, SONNET)
            second = fetcher.calculate_cost_from_tokens(usage, SONNET)

        assert len(calls) == 1
        assert first == second == pytest.approx(0.0105)

    def test_http_error_falls_back_to_snapshot(self, caplog):
        """Verify a failed fetch logs a warning and uses offline rates."""
        def handler(request):
            return httpx.Response(500)

        with PricingFetcher(client=_mock_client(handler)) as fetcher:
            table = fetcher.ensure_pricing_loaded()

        assert table is OFFLINE_PRICING
        assert "using offline snapshot" in caplog.text

    def test_invalid_json_falls_back_to_snapshot(self):
        """Verify a non-JSON body falls back to offline rates."""
        def handler(request):
            return httpx.Response(200, text="not json")

        with PricingFetcher(client=_mock_client(handler)) as fetcher:
            assert fetcher.ensure_pricing_loaded() is OFFLINE_PRICING

    def test_unknown_model_costs_zero(self):
        """Verify an unknown model yields 0 rather than an error."""
        with PricingFetcher(offline=True) as fetcher:
            cost = fetcher.calculate_cost_from_tokens(TokenUsage(input_tokens=1000), "unknown-model")
        assert cost == 0.0

    def test_close_releases_owned_client(self):
        """Verify the fetcher closes the HTTP client it created."""
        fetcher = PricingFetcher()
        fetcher._client = httpx.Client()
        client = fetcher._client
        with fetcher:
            pass
        assert client.is_closed
        assert fetcher._client is None

    def test_close_keeps_injected_client_open(self):
        """Verify a caller-provided client is not closed."""
        client = _mock_client(lambda request: httpx.Response(200, json=LITELLM_PAYLOAD))
        with PricingFetcher(client=client) as fetcher:
            fetcher.ensure_pricing_loaded()
        assert not client.is_closed
        client.close()

    def test_released_on_error(self):
        """Verify cleanup happens when the wrapped call raises."""
        fetcher = PricingFetcher(offline=True)
        with pytest.raises(RuntimeError):
            with fetcher:
                fetcher.ensure_pricing_loaded()
                raise RuntimeError("boom")
        assert fetcher._table is None
