"""
Budget tracking against a fixed daily spend limit.

Accumulates the cost of every successful API call and classifies the
running total against the budget.

Thresholds (percentage of budget, all inclusive):
- 70  -> should warn
- 80  -> near limit
- 100 -> exceeded
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Optional

from .errors import InvalidConfigurationError
from .pricing import PRICING_TABLE, CostBreakdown, PricingTable, calculate_cost
from .token_counter import UsageRecord

logger = logging.getLogger(__name__)

WARN_THRESHOLD_PERCENT = 70
NEAR_LIMIT_THRESHOLD_PERCENT = 80
EXCEEDED_THRESHOLD_PERCENT = 100


class BudgetLevel(str, Enum):
    """Single label for the current spend, most severe first."""
    EXCEEDED = "exceeded"
    NEAR_LIMIT = "near-limit"
    ATTENTION = "attention"
    NORMAL = "normal"

    @classmethod
    def from_percentage(cls, percentage: float) -> "BudgetLevel":
        if percentage >= EXCEEDED_THRESHOLD_PERCENT:
            return cls.EXCEEDED
        if percentage >= NEAR_LIMIT_THRESHOLD_PERCENT:
            return cls.NEAR_LIMIT
        if percentage >= WARN_THRESHOLD_PERCENT:
            return cls.ATTENTION
        return cls.NORMAL


@dataclass(frozen=True)
class BudgetStatus:
    """Threshold flags for the current spend.

    The flags are independent: a tracker past 100% is also near the limit
    and should warn.
    """
    current_cost: float
    usage: UsageRecord
    remaining: float
    usage_percentage: float
    is_near_limit: bool
    is_exceeded: bool
    should_warn: bool


@dataclass(frozen=True)
class BudgetReport:
    """Summary of budget use for display."""
    budget: float
    current_cost: float
    remaining: float
    usage: UsageRecord
    percentage: float
    status: BudgetLevel


class BudgetTracker:
    """Running usage accumulator checked against a fixed budget.

    One tracker per process or per session; it holds no locks.
    """

    def __init__(
        self,
        budget: float,
        pricing: PricingTable = PRICING_TABLE,
        default_model: Optional[str] = None,
    ):
        """Initialize the tracker.

        Args:
            budget: Spend limit in USD, must be > 0
            pricing: Pricing table used for every call
            default_model: Model billed when ``add_usage`` gets none

        Raises:
            InvalidConfigurationError: If budget is not a finite number > 0
        """
        if (isinstance(budget, bool) or not isinstance(budget, Real)
                or math.isnan(budget) or math.isinf(budget) or budget <= 0):
            raise InvalidConfigurationError(
                "budget must be > 0", details={"budget": budget}
            )

        self.budget = float(budget)
        self.pricing = pricing
        self.default_model = default_model or pricing.default_model
        self._usage = UsageRecord()

    @property
    def usage(self) -> UsageRecord:
        """Snapshot of the accumulator."""
        return self._usage

    def add_usage(self, input_tokens: int, output_tokens: int,
                  model: Optional[str] = None) -> CostBreakdown:
        """Record one API call and return its incremental cost."""
        was_warning = self._percentage() >= WARN_THRESHOLD_PERCENT

        cost = calculate_cost(input_tokens, output_tokens, model or self.default_model, self.pricing)
        self._usage = self._usage + cost.to_usage_record()

        if not was_warning and self._percentage() >= WARN_THRESHOLD_PERCENT:
            logger.warning(
                "Spend $%.6f has reached %.1f%% of the $%.2f budget",
                self._usage.cost, self._percentage(), self.budget,
            )
        return cost

    def get_current_cost(self) -> float:
        return self._usage.cost

    def check_budget(self) -> BudgetStatus:
        current_cost = self.get_current_cost()
        percentage = self._percentage()

        return BudgetStatus(
            current_cost=current_cost,
            usage=self._usage,
            remaining=self.budget - current_cost,
            usage_percentage=percentage,
            is_near_limit=percentage >= NEAR_LIMIT_THRESHOLD_PERCENT,
            is_exceeded=percentage >= EXCEEDED_THRESHOLD_PERCENT,
            should_warn=percentage >= WARN_THRESHOLD_PERCENT,
        )

    def get_report(self) -> BudgetReport:
        current_cost = self.get_current_cost()
        percentage = self._percentage()

        return BudgetReport(
            budget=self.budget,
            current_cost=current_cost,
            remaining=self.budget - current_cost,
            usage=self._usage,
            percentage=percentage,
            status=BudgetLevel.from_percentage(percentage),
        )

    def reset(self) -> None:
        """Zero the accumulator. The budget is unchanged."""
        self._usage = UsageRecord()
        logger.info("Budget tracker reset")

    def _percentage(self) -> float:
        return self._usage.cost / self.budget * 100
