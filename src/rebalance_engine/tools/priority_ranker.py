"""
Rebalance Engine Tool: Priority Ranker
Rank assets for capital distribution.

Pure functions for:
- Weighting each asset's allocation gap by its normalized score
- Ordering assets by priority with a deterministic symbol tie-break

No file I/O, no eligibility filtering (the distributor does that).
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Sequence

from rebalance_engine.config.constants import PERCENTAGE_PRECISION, SCORE_DIVISOR
from rebalance_engine.schemas.recommendation_output import AssetContext, AssetWithPriority
from rebalance_engine.tools.decimal_math import DecimalMath

logger = logging.getLogger(__name__)


def compute_priority(
    allocation_gap: Decimal,
    score: Decimal,
    dmath: Optional[DecimalMath] = None,
) -> Decimal:
    """
    priority = allocation_gap x (score / 100)

    Score is used as supplied. Negative gaps (over target) and scores
    outside 0-100 both produce a signed priority.
    """
    dmath = dmath or DecimalMath()
    normalized_score = dmath.divide(score, Decimal(SCORE_DIVISOR))
    return dmath.multiply(allocation_gap, normalized_score)


def compute_priority_from_strings(allocation_gap: str, score: str) -> str:
    """String wrapper around compute_priority, result to 4 decimal places."""
    dmath = DecimalMath()
    priority = compute_priority(dmath.parse(allocation_gap), dmath.parse(score), dmath)
    return dmath.to_fixed(priority, PERCENTAGE_PRECISION)


def sort_by_priority(
    assets: Sequence[AssetContext],
    dmath: Optional[DecimalMath] = None,
) -> list[AssetWithPriority]:
    """
    Attach a priority to every asset and order them.

    Order: priority descending, then symbol ascending. The symbol
    tie-break makes the order total, so equal priorities (e.g. two
    zero gaps) always come out the same way.
    """
    dmath = dmath or DecimalMath()

    prioritized = [
        AssetWithPriority(
            **asset.model_dump(exclude={"priority"}),
            priority=compute_priority(asset.allocation_gap, asset.score, dmath),
        )
        for asset in assets
    ]

    # Two stable passes: symbol first, then priority (reverse keeps stability)
    prioritized.sort(key=lambda a: a.symbol)
    prioritized.sort(key=lambda a: a.priority, reverse=True)

    if prioritized:
        top = prioritized[0]
        logger.info(
            f"[PriorityRanker] Ranked {len(prioritized)} assets "
            f"(top={top.symbol} priority={dmath.to_fixed(top.priority, PERCENTAGE_PRECISION)})"
        )
    else:
        logger.info("[PriorityRanker] No assets to rank")

    return prioritized
