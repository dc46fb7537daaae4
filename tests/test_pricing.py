"""
Unit tests for pricing calculations.

Tests cost accuracy, default-model fallback, and input validation.
"""

import math

import pytest

from ai_study_assistant.core.errors import InvalidArgumentError, InvalidConfigurationError
from ai_study_assistant.core.pricing import (
    DEFAULT_MODEL_NAME,
    PRICING_TABLE,
    ModelPricing,
    PricingTable,
    calculate_cost,
    get_model_price,
)
from ai_study_assistant.core.token_counter import TokenUsage, UsageRecord


class TestTokenUsage:
    """Test TokenUsage and UsageRecord dataclasses."""

    def test_total_tokens_calculation(self):
        """Verify total_tokens is computed correctly."""
        usage = TokenUsage(input_tokens=100, output_tokens=50)
        assert usage.total_tokens == 150

    def test_zero_tokens(self):
        """Verify zero token handling."""
        usage = TokenUsage(input_tokens=0, output_tokens=0)
        assert usage.total_tokens == 0

    def test_usage_records_add(self):
        """Verify records accumulate field by field."""
        total = UsageRecord(10, 5, 0.25) + UsageRecord(1, 2, 0.5)
        assert total == UsageRecord(input_tokens=11, output_tokens=7, cost=0.75)
        assert total.total_tokens == 18

    def test_usage_record_dict_round_trip(self):
        """Verify stored dicts include the derived total."""
        record = UsageRecord(100, 200, 0.01)
        data = record.to_dict()
        assert data == {"input_tokens": 100, "output_tokens": 200,
                        "total_tokens": 300, "cost": 0.01}
        assert UsageRecord.from_dict(data) == record

    def test_usage_record_from_partial_dict(self):
        """Missing fields read as zero."""
        assert UsageRecord.from_dict({}) == UsageRecord()


class TestPricingTable:
    """Test pricing table functionality."""

    def test_get_supported_model(self):
        """Verify pricing retrieval for supported models."""
        pricing = PRICING_TABLE.get_pricing("claude-3-opus-20240229")
        assert pricing.input_price_per_million == 15.0
        assert pricing.output_price_per_million == 75.0

    def test_unknown_model_falls_back_to_default(self):
        """Verify unknown models get the default model's price."""
        assert PRICING_TABLE.get_pricing("unknown-model") == PRICING_TABLE.get_pricing(DEFAULT_MODEL_NAME)
        assert get_model_price(None) == PRICING_TABLE.get_pricing(DEFAULT_MODEL_NAME)

    def test_default_model_must_be_priced(self):
        """Verify a table cannot name an unpriced default."""
        with pytest.raises(InvalidConfigurationError, match="no price entry"):
            PricingTable({"a": ModelPricing(1.0, 2.0)}, default_model="b")

    def test_negative_price_rejected(self):
        with pytest.raises(InvalidConfigurationError):
            ModelPricing(-1.0, 2.0)

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
    def test_non_finite_price_rejected(self, bad):
        """Verify NaN or infinite prices cannot produce undefined costs."""
        with pytest.raises(InvalidConfigurationError, match="finite"):
            ModelPricing(bad, 1.0)
        with pytest.raises(InvalidConfigurationError, match="finite"):
            ModelPricing(1.0, bad)

    def test_with_overrides_returns_new_table(self):
        """Verify overrides never mutate the built-in table."""
        table = PRICING_TABLE.with_overrides({"my-model": ModelPricing(1.0, 2.0)}, "my-model")
        assert table.default_model == "my-model"
        assert table.get_pricing("anything") == ModelPricing(1.0, 2.0)
        assert not PRICING_TABLE.is_known("my-model")


class TestCostCalculation:
    """Test cost calculation accuracy."""

    def test_exact_cost_default_model(self):
        """Verify exact cost calculation for the default model."""
        cost = calculate_cost(1_000_000, 1_000_000, DEFAULT_MODEL_NAME)
        # Input: 1M/1M * $3 = $3, Output: 1M/1M * $15 = $15
        assert cost.input_cost == 3.0
        assert cost.output_cost == 15.0
        assert cost.total_cost == 18.0

    def test_exact_cost_haiku(self):
        """Verify exact cost calculation for Claude 3 Haiku."""
        cost = calculate_cost(2_000_000, 400_000, "claude-3-haiku-20240307")
        # Input: 2 * $0.25 = $0.50, Output: 0.4 * $1.25 = $0.50
        assert cost.total_cost == pytest.approx(1.0)

    def test_totals_are_derived(self):
        """Verify total tokens and total cost are sums of their parts."""
        for input_tokens, output_tokens in [(0, 0), (1, 0), (123, 456), (10_000, 3)]:
            cost = calculate_cost(input_tokens, output_tokens, "GLM-4")
            assert cost.total_tokens == input_tokens + output_tokens
            assert cost.total_cost == cost.input_cost + cost.output_cost

    def test_zero_tokens_cost(self):
        """Verify zero tokens cost nothing for every model."""
        for model in list(PRICING_TABLE.prices) + ["unknown-model"]:
            assert calculate_cost(0, 0, model).total_cost == 0

    def test_unknown_model_matches_default(self):
        """Verify unknown models cost the same as the default model."""
        unknown = calculate_cost(12_345, 678, "unknown-model")
        default = calculate_cost(12_345, 678, DEFAULT_MODEL_NAME)
        assert unknown.total_cost == default.total_cost
        assert unknown.model == "unknown-model"

    def test_custom_table(self):
        """Verify an explicit table is used instead of the built-in one."""
        table = PricingTable({"m": ModelPricing(1.0, 1.0)}, default_model="m")
        assert calculate_cost(700_000, 0, "m", table).total_cost == 0.7

    def test_usage_record_conversion(self):
        cost = calculate_cost(1000, 500, DEFAULT_MODEL_NAME)
        record = cost.to_usage_record()
        assert record.input_tokens == 1000
        assert record.output_tokens == 500
        assert record.cost == cost.total_cost

    @pytest.mark.parametrize("bad", [-1, float("nan"), float("inf"), "100", None, True])
    def test_invalid_input_tokens(self, bad):
        """Verify negative, NaN and non-numeric counts are rejected."""
        with pytest.raises(InvalidArgumentError, match="input_tokens"):
            calculate_cost(bad, 0, DEFAULT_MODEL_NAME)

    @pytest.mark.parametrize("bad", [-0.5, math.nan, "x"])
    def test_invalid_output_tokens(self, bad):
        with pytest.raises(InvalidArgumentError, match="output_tokens") as exc_info:
            calculate_cost(0, bad, DEFAULT_MODEL_NAME)
        assert exc_info.value.code == "INVALID_ARGUMENT"
