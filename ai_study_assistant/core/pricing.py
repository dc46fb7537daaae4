"""
Pricing calculations and rate management.

Handles cost computations for the supported chat models. This table is the
only place prices live; display and reporting code look them up here too.
"""

import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Dict, Mapping, Optional

from .errors import InvalidArgumentError, InvalidConfigurationError
from .token_counter import UsageRecord

TOKENS_PER_MILLION = 1_000_000

DEFAULT_MODEL_NAME = "claude-3-5-sonnet-20241022"


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model."""
    input_price_per_million: float  # USD per 1M input tokens
    output_price_per_million: float  # USD per 1M output tokens

    def __post_init__(self):
        """Validate prices are finite and non-negative."""
        for price in (self.input_price_per_million, self.output_price_per_million):
            if not math.isfinite(price) or price < 0:
                raise InvalidConfigurationError("model prices must be finite and >= 0")


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table with a designated fallback model."""
    prices: Mapping[str, ModelPricing]
    default_model: str = DEFAULT_MODEL_NAME

    def __post_init__(self):
        if self.default_model not in self.prices:
            raise InvalidConfigurationError(
                f"Default model '{self.default_model}' has no price entry"
            )

    def get_pricing(self, model: Optional[str]) -> ModelPricing:
        """Get pricing for a specific model.

        Unknown models are billed at the default model's price rather
        than rejected.

        Args:
            model: Model identifier

        Returns:
            ModelPricing for the model, or for ``default_model``
        """
        if model in self.prices:
            return self.prices[model]
        return self.prices[self.default_model]

    def is_known(self, model: str) -> bool:
        return model in self.prices

    def with_overrides(
        self,
        prices: Mapping[str, ModelPricing],
        default_model: Optional[str] = None,
    ) -> "PricingTable":
        """Return a new table with ``prices`` added or replaced."""
        merged: Dict[str, ModelPricing] = dict(self.prices)
        merged.update(prices)
        return PricingTable(merged, default_model or self.default_model)


@dataclass(frozen=True)
class CostBreakdown:
    """Cost of a single API call, split into input and output parts."""
    model: str
    input_tokens: int
    output_tokens: int
    input_cost: float
    output_cost: float

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def total_cost(self) -> float:
        return self.input_cost + self.output_cost

    def to_usage_record(self) -> UsageRecord:
        return UsageRecord(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cost=self.total_cost,
        )


# Fixed pricing table (USD per million tokens) - no dynamic fetching
PRICING_TABLE = PricingTable({
    "claude-3-5-sonnet-20241022": ModelPricing(
        input_price_per_million=3.0,
        output_price_per_million=15.0
    ),
    "claude-3-opus-20240229": ModelPricing(
        input_price_per_million=15.0,
        output_price_per_million=75.0
    ),
    "claude-3-haiku-20240307": ModelPricing(
        input_price_per_million=0.25,
        output_price_per_million=1.25
    ),
    "GLM-4.7": ModelPricing(
        input_price_per_million=0.5,
        output_price_per_million=0.5
    ),
    "GLM-4": ModelPricing(
        input_price_per_million=0.1,
        output_price_per_million=0.1
    ),
}, default_model=DEFAULT_MODEL_NAME)


def _validate_token_count(name: str, value) -> None:
    # bool is a Real subclass; True tokens is never what the caller meant
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidArgumentError(
            f"{name} must be a valid non-negative number", details={name: value}
        )
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise InvalidArgumentError(
            f"{name} must be a valid non-negative number", details={name: value}
        )


def get_model_price(model: Optional[str], table: PricingTable = PRICING_TABLE) -> ModelPricing:
    """Look up a model's price, falling back to the table default."""
    return table.get_pricing(model)


def calculate_cost(
    input_tokens: int,
    output_tokens: int,
    model: Optional[str],
    table: PricingTable = PRICING_TABLE,
) -> CostBreakdown:
    """Calculate the cost of one API call.

    Args:
        input_tokens: Prompt tokens reported by the API
        output_tokens: Completion tokens reported by the API
        model: Model identifier; unknown models use the default price
        table: Pricing table to consult

    Returns:
        CostBreakdown with input, output and total cost

    Raises:
        InvalidArgumentError: If a token count is negative, NaN or not a number
    """
    _validate_token_count("input_tokens", input_tokens)
    _validate_token_count("output_tokens", output_tokens)

    pricing = get_model_price(model, table)

    # cost = tokens / 1M * price_per_million
    input_cost = input_tokens / TOKENS_PER_MILLION * pricing.input_price_per_million
    output_cost = output_tokens / TOKENS_PER_MILLION * pricing.output_price_per_million

    return CostBreakdown(
        model=model or table.default_model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        input_cost=input_cost,
        output_cost=output_cost,
    )
