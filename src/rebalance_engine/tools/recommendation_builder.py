"""
Rebalance Engine: Recommendation Builder

Receives a snapshot of AssetContext values and an investable total.
Produces:
- RecommendationItem per asset, in priority order, with audit breakdown
- RecommendationOutput with run totals (run_recommendation_pipeline)

Ranks with the PriorityRanker, splits with the CapitalDistributor.
This builder never persists results or re-fetches inputs.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence, Union

from pydantic import ValidationError as SchemaValidationError

from rebalance_engine.config.constants import PERCENTAGE_PRECISION
from rebalance_engine.exceptions import InvariantViolationError
from rebalance_engine.schemas.recommendation_output import (
    AssetContext,
    AssetWithPriority,
    DistributionResult,
    RecommendationBreakdown,
    RecommendationItem,
    RecommendationOutput,
)
from rebalance_engine.tools.capital_distributor import distribute_capital
from rebalance_engine.tools.decimal_math import DecimalMath
from rebalance_engine.tools.priority_ranker import compute_priority, sort_by_priority

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Item Assembly
# ---------------------------------------------------------------------------

def _build_item(
    asset: AssetContext,
    priority: Decimal,
    amount: Decimal,
    redistributed_from: Decimal,
    sort_order: int,
    dmath: DecimalMath,
) -> RecommendationItem:
    return RecommendationItem(
        asset_id=asset.id,
        symbol=asset.symbol,
        score=dmath.to_fixed(asset.score, PERCENTAGE_PRECISION),
        current_allocation=dmath.to_fixed(asset.current_allocation, PERCENTAGE_PRECISION),
        target_allocation=dmath.to_fixed(asset.target_allocation, PERCENTAGE_PRECISION),
        allocation_gap=dmath.to_fixed(asset.allocation_gap, PERCENTAGE_PRECISION),
        recommended_amount=dmath.to_fixed(amount),
        is_over_allocated=asset.is_over_allocated,
        breakdown=RecommendationBreakdown(
            class_id=asset.class_id,
            class_name=asset.class_name,
            subclass_id=asset.subclass_id,
            subclass_name=asset.subclass_name,
            current_value=dmath.to_fixed(asset.current_value),
            target_midpoint=dmath.to_fixed(asset.target_allocation, PERCENTAGE_PRECISION),
            priority=dmath.to_fixed(priority, PERCENTAGE_PRECISION),
            redistributed_from=(
                None if dmath.is_zero(redistributed_from)
                else dmath.to_fixed(redistributed_from)
            ),
        ),
        sort_order=sort_order,
    )


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def generate(
    assets: Sequence[AssetContext],
    total_investable: Union[str, Decimal],
    dmath: Optional[DecimalMath] = None,
) -> list[RecommendationItem]:
    """
    Rank assets, distribute the total and assemble recommendation items.

    With total_investable <= 0 no ranking happens: one zero item per
    asset comes back in input order.

    Raises:
        InvalidDecimalError: total_investable is not a valid decimal.
    """
    dmath = dmath or DecimalMath()
    total = dmath.parse(total_investable)

    if not dmath.is_positive(total):
        logger.info(
            f"[RecommendationBuilder] Total {total} not positive, "
            f"{len(assets)} zero recommendations in input order"
        )
        return [
            _build_item(
                asset,
                priority=compute_priority(asset.allocation_gap, asset.score, dmath),
                amount=Decimal(0),
                redistributed_from=Decimal(0),
                sort_order=idx,
                dmath=dmath,
            )
            for idx, asset in enumerate(assets)
        ]

    ranked: list[AssetWithPriority] = sort_by_priority(assets, dmath)
    distributions: list[DistributionResult] = distribute_capital(ranked, total, dmath=dmath)

    items = [
        _build_item(
            asset,
            priority=asset.priority,
            amount=dist.amount,
            redistributed_from=dist.redistributed_from,
            sort_order=idx,
            dmath=dmath,
        )
        for idx, (asset, dist) in enumerate(zip(ranked, distributions))
    ]

    logger.info(
        f"[RecommendationBuilder] Built {len(items)} recommendations "
        f"for total {dmath.to_fixed(total)}"
    )
    return items


def run_recommendation_pipeline(
    assets: Sequence[AssetContext],
    total_investable: Union[str, Decimal],
    dmath: Optional[DecimalMath] = None,
) -> RecommendationOutput:
    """
    Run generation and wrap the items with run-level totals.

    Args:
        assets: Asset snapshot from the portfolio/scoring collaborator.
        total_investable: Capital to distribute.
        dmath: Decimal arithmetic to use; a default-config one otherwise.

    Returns:
        Validated RecommendationOutput (sum and over-allocation invariants
        are checked by the schema).

    Raises:
        InvalidDecimalError: total_investable is not a valid decimal.
        InvariantViolationError: the assembled result fails schema validation.
    """
    dmath = dmath or DecimalMath()
    total = dmath.parse(total_investable)
    logger.info(f"[RecommendationBuilder] Running recommendation pipeline for {len(assets)} assets ...")

    items = generate(assets, total, dmath)

    total_allocated = dmath.add_exact(*(dmath.parse(i.recommended_amount) for i in items))
    funded = [i for i in items if dmath.is_positive(dmath.parse(i.recommended_amount))]
    over_allocated = sum(1 for i in items if i.is_over_allocated)
    redistributed = sum(1 for i in items if i.breakdown.redistributed_from is not None)

    if funded:
        top = funded[0]
        summary = (
            f"Distributed {dmath.to_fixed(total_allocated)} across "
            f"{len(funded)} of {len(items)} assets; top-ranked funded asset {top.symbol} "
            f"receives {top.recommended_amount}. {over_allocated} over-allocated."
        )
    else:
        summary = (
            f"No capital distributed across {len(items)} assets "
            f"(total {dmath.to_fixed(total)}, "
            f"{over_allocated} over-allocated)."
        )

    try:
        output = RecommendationOutput(
            total_investable=dmath.to_fixed(total),
            total_allocated=dmath.to_fixed(total_allocated),
            items=items,
            item_count=len(items),
            over_allocated_count=over_allocated,
            redistributed_count=redistributed,
            generated_at=datetime.now(timezone.utc),
            summary=summary,
        )
    except SchemaValidationError as e:
        raise InvariantViolationError(f"Recommendation result failed validation: {e}")
    logger.info(f"[RecommendationBuilder] {summary}")
    return output
