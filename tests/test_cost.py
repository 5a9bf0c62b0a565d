"""
Unit tests for cost resolution and deduplication.
"""

from unittest.mock import Mock

import pytest

from cc_usage.config.loader import CostMode
from cc_usage.core.cost import calculate_cost_for_entry
from cc_usage.core.dedup import Deduplicator, create_unique_hash
from cc_usage.core.pricing import PricingFetcher
from cc_usage.core.token_counter import TokenUsage
from cc_usage.storage.models import UsageRecord


SONNET = "claude-sonnet-4-20250514"


def _record(cost=0.05, model=SONNET, message_id=None, request_id=None, **usage):
    usage = usage or {"input_tokens": 1000, "output_tokens": 500,
                      "cache_creation_tokens": 200, "cache_read_tokens": 100}
    return UsageRecord(
        timestamp="2024-01-01T10:00:00Z",
        usage=TokenUsage(**usage),
        model=model,
        message_id=message_id,
        request_id=request_id,
        cost_usd=cost,
    )


@pytest.fixture
def fetcher():
    with PricingFetcher(offline=True) as f:
        yield f


class TestDisplayMode:
    """Test display mode uses only the pre-computed cost."""

    def test_returns_precomputed_cost(self, fetcher):
        """Verify costUSD is returned as-is."""
        assert calculate_cost_for_entry(_record(), CostMode.DISPLAY, fetcher) == 0.05

    def test_missing_cost_is_zero(self, fetcher):
        """Verify an absent costUSD yields 0 even when the model is priced."""
        assert calculate_cost_for_entry(_record(cost=None), CostMode.DISPLAY, fetcher) == 0

    def test_never_consults_pricing(self):
        """Verify display mode works without a pricing source."""
        pricing = Mock(spec=PricingFetcher)
        assert calculate_cost_for_entry(_record(), CostMode.DISPLAY, pricing) == 0.05
        assert calculate_cost_for_entry(_record(), CostMode.DISPLAY, None) == 0.05
        pricing.calculate_cost_from_tokens.assert_not_called()

    def test_zero_and_negative_costs_preserved(self):
        """Verify 0 and negative costs are not treated as missing."""
        assert calculate_cost_for_entry(_record(cost=0.0), CostMode.DISPLAY, None) == 0.0
        assert calculate_cost_for_entry(_record(cost=-0.01), CostMode.DISPLAY, None) == -0.01


class TestCalculateMode:
    """Test calculate mode always prices from tokens."""

    def test_ignores_precomputed_cost(self, fetcher):
        """Verify costUSD is ignored in favour of token pricing."""
        cost = calculate_cost_for_entry(_record(cost=99.99), CostMode.CALCULATE, fetcher)
        assert cost == pytest.approx(0.01128)

    def test_repeatable(self, fetcher):
        """Verify repeated calls with a stable table give the same value."""
        record = _record()
        assert (calculate_cost_for_entry(record, CostMode.CALCULATE, fetcher)
                == calculate_cost_for_entry(record, CostMode.CALCULATE, fetcher))

    def test_no_model_is_zero(self, fetcher):
        """Verify records without a model cost nothing."""
        assert calculate_cost_for_entry(_record(model=None), CostMode.CALCULATE, fetcher) == 0

    def test_unknown_model_is_zero(self, fetcher):
        """Verify unknown models cost nothing."""
        assert calculate_cost_for_entry(_record(model="unknown-model"), CostMode.CALCULATE, fetcher) == 0

    def test_zero_tokens_is_zero(self, fetcher):
        """Verify zero token counts cost nothing."""
        record = _record(cost=None, input_tokens=0)
        assert calculate_cost_for_entry(record, CostMode.CALCULATE, fetcher) == 0

    def test_requires_fetcher_for_priced_model(self):
        """Verify a missing pricing source is a programming error."""
        with pytest.raises(ValueError, match="pricing fetcher is required"):
            calculate_cost_for_entry(_record(), CostMode.CALCULATE, None)


class TestAutoMode:
    """Test auto mode prefers the pre-computed cost."""

    def test_prefers_precomputed_cost(self, fetcher):
        """Verify costUSD wins even when the model is priced."""
        assert calculate_cost_for_entry(_record(), CostMode.AUTO, fetcher) == 0.05

    def test_calculates_when_cost_missing(self, fetcher):
        """Verify token pricing is used when costUSD is absent."""
        cost = calculate_cost_for_entry(_record(cost=None), CostMode.AUTO, fetcher)
        assert cost == pytest.approx(0.01128)

    def test_no_cost_and_no_model_is_zero(self, fetcher):
        """Verify the zero-cost fallback."""
        assert calculate_cost_for_entry(_record(cost=None, model=None), CostMode.AUTO, fetcher) == 0

    def test_accepts_string_mode(self, fetcher):
        """Verify mode values are accepted as plain strings."""
        assert calculate_cost_for_entry(_record(), "auto", fetcher) == 0.05


class TestDeduplicator:
    """Test identity-key deduplication."""

    def test_unique_hash(self):
        """Verify the key combines message and request ids."""
        assert create_unique_hash(_record(message_id="msg_1", request_id="req_1")) == "msg_1:req_1"

    def test_hash_requires_both_ids(self):
        """Verify a missing id yields no key."""
        assert create_unique_hash(_record(message_id="msg_1")) is None
        assert create_unique_hash(_record(request_id="req_1")) is None

    def test_first_record_wins(self):
        """Verify a repeated key is rejected after the first acceptance."""
        dedup = Deduplicator()
        record = _record(message_id="msg_1", request_id="req_1")
        assert dedup.accept(record) is True
        assert dedup.accept(record) is False
        assert len(dedup) == 1

    def test_same_message_different_request_kept(self):
        """Verify keys differ when only one component matches."""
        dedup = Deduplicator()
        assert dedup.accept(_record(message_id="msg_1", request_id="req_1"))
        assert dedup.accept(_record(message_id="msg_1", request_id="req_2"))

    def test_records_without_key_always_kept(self):
        """Verify keyless records are never deduplicated, even against each other."""
        dedup = Deduplicator()
        record = _record(message_id="msg_1")
        assert dedup.accept(record)
        assert dedup.accept(record)
        assert len(dedup) == 0
