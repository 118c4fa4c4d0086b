"""
Rebalance Engine Tool: Context Builder
Assemble AssetContext values from a portfolio snapshot.

Pure functions for:
- Total investable capital (contribution + dividends)
- Current allocation %, target midpoint, gap and over-allocation flag
  from a holding's value and its class/subclass target range

Scores and target ranges are supplied by the caller.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Sequence, Union

from pydantic import BaseModel, Field

from rebalance_engine.config.constants import (
    DEFAULT_SCORE,
    DEFAULT_TARGET_MAX,
    DEFAULT_TARGET_MIN,
    MONETARY_PRECISION,
    PERCENTAGE_PRECISION,
)
from rebalance_engine.exceptions import NegativeAmountError
from rebalance_engine.schemas.recommendation_output import AssetContext
from rebalance_engine.tools.decimal_math import DecimalMath

logger = logging.getLogger(__name__)

DecimalInput = Union[str, Decimal, int]


# ---------------------------------------------------------------------------
# Snapshot Models
# ---------------------------------------------------------------------------

class TargetRange(BaseModel):
    """Allocation target range for an asset class or subclass."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    target_min: Optional[str] = Field(None, description="Lower bound %")
    target_max: Optional[str] = Field(None, description="Upper bound %")
    min_allocation_value: Optional[str] = Field(None, description="Smallest viable amount")

    @property
    def has_range(self) -> bool:
        return bool(self.target_min) and bool(self.target_max)


class Holding(BaseModel):
    """One portfolio position as reported by the portfolio collaborator."""

    id: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)
    name: Optional[str] = None
    value: str = Field(..., description="Current value in base currency")
    score: Optional[str] = Field(None, description="None when the asset is unscored")
    asset_class: Optional[TargetRange] = None
    subclass: Optional[TargetRange] = None
    is_ignored: bool = False


# ---------------------------------------------------------------------------
# Pure Functions
# ---------------------------------------------------------------------------

def compute_total_investable(
    contribution: DecimalInput,
    dividends: Optional[DecimalInput] = None,
) -> str:
    """
    Total investable = contribution + dividends, 4 decimal places.

    Empty or missing dividends count as zero.

    Raises:
        InvalidDecimalError: either input is malformed.
        NegativeAmountError: either input is negative.
    """
    dmath = DecimalMath()
    contribution_dec = dmath.parse(contribution)
    if dividends is None or (isinstance(dividends, str) and dividends.strip() == ""):
        dividends_dec = Decimal(0)
    else:
        dividends_dec = dmath.parse(dividends)

    for label, value in (("Contribution", contribution_dec), ("Dividends", dividends_dec)):
        if dmath.is_negative(value):
            raise NegativeAmountError(f"{label} cannot be negative: {value}")

    return dmath.to_fixed(dmath.add(contribution_dec, dividends_dec), MONETARY_PRECISION)


def build_asset_context(
    holding: Holding,
    portfolio_value: DecimalInput,
    dmath: Optional[DecimalMath] = None,
) -> AssetContext:
    """
    Derive an AssetContext for one holding.

    current % = value / portfolio_value x 100 (0 for an empty portfolio)
    target    = (target_min + target_max) / 2, subclass range over class range,
                0-100 when neither has a range
    gap       = target - current
    over-allocated when current % > target_max
    """
    dmath = dmath or DecimalMath()
    value = dmath.parse(holding.value)
    total_value = dmath.parse(portfolio_value)

    if dmath.is_zero(total_value):
        current = Decimal(0)
    else:
        current = dmath.multiply(dmath.divide(value, total_value), Decimal(100))

    target_min = dmath.parse(DEFAULT_TARGET_MIN)
    target_max = dmath.parse(DEFAULT_TARGET_MAX)
    min_allocation_value = None
    for config in (holding.subclass, holding.asset_class):
        if config is not None and config.has_range:
            target_min = dmath.parse(config.target_min)
            target_max = dmath.parse(config.target_max)
            min_allocation_value = config.min_allocation_value
            break

    midpoint = dmath.divide(dmath.add(target_min, target_max), Decimal(2))
    gap = dmath.subtract(midpoint, current)

    return AssetContext(
        id=holding.id,
        symbol=holding.symbol,
        name=holding.name,
        class_id=holding.asset_class.id if holding.asset_class else None,
        class_name=holding.asset_class.name if holding.asset_class else None,
        subclass_id=holding.subclass.id if holding.subclass else None,
        subclass_name=holding.subclass.name if holding.subclass else None,
        current_allocation=dmath.to_fixed(current, PERCENTAGE_PRECISION),
        target_allocation=dmath.to_fixed(midpoint, PERCENTAGE_PRECISION),
        allocation_gap=dmath.to_fixed(gap, PERCENTAGE_PRECISION),
        score=holding.score if holding.score is not None else DEFAULT_SCORE,
        current_value=value,
        min_allocation_value=min_allocation_value,
        is_over_allocated=dmath.compare(current, target_max) > 0,
    )


def build_asset_contexts(holdings: Sequence[Holding]) -> list[AssetContext]:
    """
    Build contexts for every non-ignored holding.

    Allocation % is measured against the total value of non-ignored holdings.
    """
    dmath = DecimalMath()
    active = [h for h in holdings if not h.is_ignored]
    portfolio_value = dmath.add(*(dmath.parse(h.value) for h in active))

    contexts = [build_asset_context(h, portfolio_value, dmath) for h in active]
    logger.info(
        f"[ContextBuilder] Built {len(contexts)} asset contexts "
        f"({len(holdings) - len(active)} ignored), portfolio value "
        f"{dmath.to_fixed(portfolio_value, MONETARY_PRECISION)}"
    )
    return contexts
