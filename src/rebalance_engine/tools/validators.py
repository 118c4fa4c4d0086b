"""
Rebalance Engine Tool: Validators
Pure invariant checks over recommendation results.

Used by tests, by callers before persisting a result, and by the
RecommendationOutput schema. The engine never calls them on its own
distribution path.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING, Sequence, Union

from rebalance_engine.config.constants import TOTAL_TOLERANCE
from rebalance_engine.tools.decimal_math import DecimalMath

if TYPE_CHECKING:
    from rebalance_engine.schemas.recommendation_output import (
        AssetContext,
        RecommendationItem,
    )

logger = logging.getLogger(__name__)


def validate_total_equals(
    items: Sequence["RecommendationItem"],
    total: Union[str, Decimal],
) -> bool:
    """True if |sum(recommended_amount) - total| <= 0.0001."""
    dmath = DecimalMath()
    expected = dmath.parse(total)
    actual = dmath.add_exact(*(dmath.parse(i.recommended_amount) for i in items))
    diff = dmath.abs(dmath.add_exact(expected, actual.copy_negate()))
    return dmath.compare(diff, dmath.parse(TOTAL_TOLERANCE)) <= 0


def validate_over_allocated_get_zero(items: Sequence["RecommendationItem"]) -> bool:
    """True if every over-allocated item recommends exactly zero."""
    dmath = DecimalMath()
    for item in items:
        if item.is_over_allocated and not dmath.is_zero(dmath.parse(item.recommended_amount)):
            return False
    return True


def validate_minimums_respected(
    items: Sequence["RecommendationItem"],
    assets: Sequence["AssetContext"],
) -> bool:
    """True if no item holds a nonzero amount below its asset's minimum."""
    dmath = DecimalMath()
    minimums = {a.id: a.minimum for a in assets}
    for item in items:
        amount = dmath.parse(item.recommended_amount)
        minimum = minimums.get(item.asset_id, Decimal(0))
        if dmath.is_positive(amount) and dmath.compare(amount, minimum) < 0:
            logger.debug(
                f"[Validators] {item.symbol}: {item.recommended_amount} below minimum {minimum}"
            )
            return False
    return True


def expected_total(
    items: Sequence["RecommendationItem"],
    total: Union[str, Decimal],
) -> str:
    """
    The sum a valid result must reach.

    The investable total, except "0" when the total is not positive
    or no item is eligible (all over-allocated, or no items at all).
    """
    dmath = DecimalMath()
    parsed = dmath.parse(total)
    if not dmath.is_positive(parsed):
        return "0"
    if all(i.is_over_allocated for i in items):
        return "0"
    return str(parsed)


def verify_determinism(
    assets: Sequence["AssetContext"],
    total_investable: Union[str, Decimal],
) -> bool:
    """
    Run generation twice and compare (asset_id, amount, sort_order) in order.
    """
    from rebalance_engine.tools.recommendation_builder import generate

    first = generate(assets, total_investable)
    second = generate(assets, total_investable)

    if len(first) != len(second):
        return False

    for r1, r2 in zip(first, second):
        if (
            r1.asset_id != r2.asset_id
            or r1.recommended_amount != r2.recommended_amount
            or r1.sort_order != r2.sort_order
        ):
            return False
    return True
