"""
Rebalance Engine — Recommendation Schemas

Input and output contracts for the capital distribution engine.
Asset contexts arrive from an external portfolio/scoring snapshot,
recommendation items leave with an audit breakdown per asset.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from rebalance_engine.tools.decimal_math import DecimalMath
from rebalance_engine.tools.validators import (
    expected_total,
    validate_over_allocated_get_zero,
    validate_total_equals,
)

# Module-level parser for the field validators
_PARSER = DecimalMath()

DECIMAL_STRING_PATTERN = r"^-?\d+(\.\d+)?$"


# ---------------------------------------------------------------------------
# Input Models
# ---------------------------------------------------------------------------

class AssetContext(BaseModel):
    """
    One asset as seen by the engine: allocation, target and score.

    Constructed per request by the caller and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)
    name: Optional[str] = None
    class_id: Optional[str] = None
    class_name: Optional[str] = None
    subclass_id: Optional[str] = None
    subclass_name: Optional[str] = None
    current_allocation: Decimal = Field(..., description="Current allocation %")
    target_allocation: Decimal = Field(..., description="Target range midpoint %")
    allocation_gap: Decimal = Field(..., description="target - current, signed")
    score: Decimal = Field(..., description="Score, nominally 0-100, unclamped")
    current_value: Decimal = Field(Decimal(0), description="Value in base currency")
    min_allocation_value: Optional[Decimal] = Field(
        None, description="Smallest viable nonzero amount; None means no minimum"
    )
    is_over_allocated: bool = False

    @field_validator(
        "current_allocation", "target_allocation", "allocation_gap",
        "score", "current_value",
        mode="before",
    )
    @classmethod
    def parse_decimal(cls, v) -> Decimal:
        return _PARSER.parse(v)

    @field_validator("min_allocation_value", mode="before")
    @classmethod
    def parse_optional_decimal(cls, v) -> Optional[Decimal]:
        if v is None or (isinstance(v, str) and v.strip() == ""):
            return None
        return _PARSER.parse(v)

    @field_validator("symbol")
    @classmethod
    def symbol_uppercase(cls, v: str) -> str:
        return v.strip().upper()

    @property
    def minimum(self) -> Decimal:
        """Configured minimum allocation, 0 when unset."""
        return self.min_allocation_value if self.min_allocation_value is not None else Decimal(0)


class AssetWithPriority(AssetContext):
    """AssetContext plus its signed priority weight."""

    priority: Decimal = Field(..., description="allocation_gap x (score / 100)")


# ---------------------------------------------------------------------------
# Distribution Models
# ---------------------------------------------------------------------------

class DistributionResult(BaseModel):
    """Capital assigned to one asset by the distributor."""

    model_config = ConfigDict(frozen=True)

    asset_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)
    redistributed_from: Decimal = Field(
        Decimal(0), ge=0, description="Cumulative amount received via redistribution"
    )


# ---------------------------------------------------------------------------
# Output Models
# ---------------------------------------------------------------------------

class RecommendationBreakdown(BaseModel):
    """Audit fields explaining one recommendation."""

    class_id: Optional[str] = None
    class_name: Optional[str] = None
    subclass_id: Optional[str] = None
    subclass_name: Optional[str] = None
    current_value: str = Field(..., pattern=DECIMAL_STRING_PATTERN)
    target_midpoint: str = Field(..., pattern=DECIMAL_STRING_PATTERN)
    priority: str = Field(..., pattern=DECIMAL_STRING_PATTERN)
    redistributed_from: Optional[str] = Field(
        None, pattern=DECIMAL_STRING_PATTERN,
        description="None when nothing was redistributed to this asset",
    )


class RecommendationItem(BaseModel):
    """Recommended investment for a single asset."""

    asset_id: str = Field(..., min_length=1)
    symbol: str = Field(..., min_length=1)
    score: str = Field(..., pattern=DECIMAL_STRING_PATTERN)
    current_allocation: str = Field(..., pattern=DECIMAL_STRING_PATTERN)
    target_allocation: str = Field(..., pattern=DECIMAL_STRING_PATTERN)
    allocation_gap: str = Field(..., pattern=DECIMAL_STRING_PATTERN)
    recommended_amount: str = Field(..., pattern=DECIMAL_STRING_PATTERN)
    is_over_allocated: bool
    breakdown: RecommendationBreakdown
    sort_order: int = Field(..., ge=0, description="Rank in final order, 0 = highest priority")


class RecommendationOutput(BaseModel):
    """Complete recommendation run: items plus run-level totals."""

    total_investable: str = Field(..., pattern=DECIMAL_STRING_PATTERN)
    total_allocated: str = Field(..., pattern=DECIMAL_STRING_PATTERN)
    items: List[RecommendationItem] = Field(default_factory=list)
    item_count: int = Field(..., ge=0)
    over_allocated_count: int = Field(..., ge=0)
    redistributed_count: int = Field(..., ge=0)
    generated_at: datetime
    summary: str = Field(..., min_length=10)

    @model_validator(mode="after")
    def validate_counts(self) -> "RecommendationOutput":
        """Count fields match items."""
        if self.item_count != len(self.items):
            raise ValueError(
                f"item_count={self.item_count} but found {len(self.items)} items"
            )
        over = sum(1 for i in self.items if i.is_over_allocated)
        if over != self.over_allocated_count:
            raise ValueError(
                f"over_allocated_count={self.over_allocated_count} but found {over}"
            )
        redistributed = sum(1 for i in self.items if i.breakdown.redistributed_from is not None)
        if redistributed != self.redistributed_count:
            raise ValueError(
                f"redistributed_count={self.redistributed_count} but found {redistributed}"
            )
        return self

    @model_validator(mode="after")
    def validate_sort_order(self) -> "RecommendationOutput":
        """sort_order runs 0..n-1 in item order."""
        for idx, item in enumerate(self.items):
            if item.sort_order != idx:
                raise ValueError(
                    f"{item.symbol}: sort_order={item.sort_order} at position {idx}"
                )
        return self

    @model_validator(mode="after")
    def validate_over_allocated_zero(self) -> "RecommendationOutput":
        """Over-allocated assets never receive capital."""
        if not validate_over_allocated_get_zero(self.items):
            offenders = [
                i.symbol for i in self.items
                if i.is_over_allocated and not _PARSER.parse(i.recommended_amount).is_zero()
            ]
            raise ValueError(f"Over-allocated assets received capital: {offenders}")
        return self

    @model_validator(mode="after")
    def validate_sum(self) -> "RecommendationOutput":
        """Amounts sum to the investable total (or 0 when nothing is eligible)."""
        target = expected_total(self.items, self.total_investable)
        if not validate_total_equals(self.items, target):
            raise ValueError(
                f"Recommended amounts do not sum to {target} "
                f"(total_investable={self.total_investable})"
            )
        return self
