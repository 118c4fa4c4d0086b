"""
Rebalance Engine Tool: Capital Distributor
Split a sum of investable capital across priority-ranked assets.

Pure functions for:
- Proportional allocation by positive priority (equal split fallback)
- Minimum-allocation enforcement with bounded redistribution passes
- Exact-sum reconciliation at monetary precision

Over-allocated assets never participate. Output order equals input order.
No file I/O, no float arithmetic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Mapping, Optional, Sequence, Union

from rebalance_engine.config.constants import MAX_ITERATIONS_FACTOR
from rebalance_engine.schemas.recommendation_output import AssetWithPriority, DistributionResult
from rebalance_engine.tools.decimal_math import DecimalMath

logger = logging.getLogger(__name__)


@dataclass
class _Slot:
    """Working allocation for one asset, index-aligned with the sorted input."""
    amount: Decimal
    redistributed_from: Decimal


# ---------------------------------------------------------------------------
# Distribution Steps
# ---------------------------------------------------------------------------

def _initial_allocation(
    assets: Sequence[AssetWithPriority],
    eligible: list[int],
    slots: list[_Slot],
    total: Decimal,
    dmath: DecimalMath,
) -> None:
    """Ideal amounts: proportional to positive priority, equal split if none is positive."""
    total_positive_priority = dmath.add(
        *(assets[i].priority for i in eligible if dmath.is_positive(assets[i].priority))
    )

    if dmath.is_zero(total_positive_priority):
        share = dmath.divide(total, Decimal(len(eligible)))
        for i in eligible:
            slots[i].amount = share
        logger.debug(
            f"[CapitalDistributor] No positive priority, equal split of {total} "
            f"across {len(eligible)} assets"
        )
        return

    for i in eligible:
        priority = assets[i].priority
        if dmath.is_positive(priority):
            proportion = dmath.divide(priority, total_positive_priority)
            slots[i].amount = dmath.multiply(total, proportion)
        # priority <= 0 starts at zero, may still receive redistributed funds


def _enforce_minimums(
    assets: Sequence[AssetWithPriority],
    eligible: list[int],
    slots: list[_Slot],
    minimums: list[Decimal],
    dmath: DecimalMath,
) -> int:
    """
    Zero below-minimum amounts and hand the freed pool to one asset per pass.

    At most MAX_ITERATIONS_FACTOR x eligible passes; stops early on a pass
    that changes nothing. Returns the number of passes run.
    """
    max_iterations = MAX_ITERATIONS_FACTOR * len(eligible)
    pool = Decimal(0)
    iterations = 0
    changed = True

    while changed and iterations < max_iterations:
        changed = False
        iterations += 1

        for i in eligible:
            slot = slots[i]
            if dmath.is_positive(slot.amount) and dmath.compare(slot.amount, minimums[i]) < 0:
                logger.debug(
                    f"[CapitalDistributor] {assets[i].symbol}: {slot.amount} below "
                    f"minimum {minimums[i]}, released to pool"
                )
                pool = dmath.add(pool, slot.amount)
                slot.amount = Decimal(0)
                changed = True

        if not dmath.is_positive(pool):
            continue

        # Top up a funded asset, or seed one whose minimum the pool covers
        recipient = next(
            (
                i for i in eligible
                if dmath.is_positive(slots[i].amount)
                or dmath.compare(minimums[i], pool) <= 0
            ),
            None,
        )
        if recipient is None:
            recipient = eligible[0]
            logger.warning(
                f"[CapitalDistributor] No asset can accept pool {pool}; "
                f"force-granting to {assets[recipient].symbol}"
            )

        slot = slots[recipient]
        slot.amount = dmath.add(slot.amount, pool)
        slot.redistributed_from = dmath.add(slot.redistributed_from, pool)
        logger.debug(
            f"[CapitalDistributor] Pass {iterations}: {pool} granted to "
            f"{assets[recipient].symbol}"
        )
        pool = Decimal(0)
        changed = True

    if changed:
        logger.warning(
            f"[CapitalDistributor] Minimum enforcement stopped at iteration cap "
            f"({max_iterations}); residual handled by reconciliation"
        )
    return iterations


def _trim_negative_remainder(
    assets: Sequence[AssetWithPriority],
    eligible: list[int],
    slots: list[_Slot],
    floors: list[Decimal],
    remainder: Decimal,
    dmath: DecimalMath,
) -> Decimal:
    """
    Take a negative rounding remainder off funded assets in priority order,
    never below each asset's floor. Returns what could not be placed (<= 0).
    """
    for i in eligible:
        if not dmath.is_negative(remainder):
            break
        slot = slots[i]
        if not dmath.is_positive(slot.amount):
            continue
        spare = dmath.round(dmath.subtract(slot.amount, floors[i]), rounding=ROUND_DOWN)
        if not dmath.is_positive(spare):
            continue
        take = min(spare, dmath.abs(remainder))
        slot.amount = dmath.subtract(slot.amount, take)
        remainder = dmath.add(remainder, take)
        logger.debug(
            f"[CapitalDistributor] {assets[i].symbol}: trimmed {take} of rounding remainder"
        )
    return remainder


def _reconcile(
    assets: Sequence[AssetWithPriority],
    eligible: list[int],
    slots: list[_Slot],
    minimums: list[Decimal],
    total: Decimal,
    dmath: DecimalMath,
) -> Decimal:
    """
    Make the amounts sum to the total at monetary precision.

    1. At full precision, the sum's noise goes to the first funded asset.
    2. Every amount is rounded to monetary precision.
    3. A positive rounding remainder goes to the first funded eligible
       asset (the first eligible one when none is funded). A negative one
       is trimmed from funded assets in priority order, each kept at or
       above max(minimum, 0).

    Returns the rounding remainder of step 3.
    """
    funded = [i for i in eligible if dmath.is_positive(slots[i].amount)]
    noise = dmath.subtract(total, dmath.add(*(s.amount for s in slots)))
    if funded and not dmath.is_zero(noise):
        slots[funded[0]].amount = dmath.add(slots[funded[0]].amount, noise)

    target = dmath.round(total)
    for slot in slots:
        slot.amount = dmath.round(slot.amount)
        slot.redistributed_from = dmath.round(slot.redistributed_from)

    remainder = dmath.subtract(target, dmath.add(*(s.amount for s in slots)))
    if dmath.is_zero(remainder):
        return remainder

    if dmath.is_positive(remainder):
        absorber = next(
            (i for i in eligible if dmath.is_positive(slots[i].amount)),
            eligible[0],
        )
        slots[absorber].amount = dmath.add(slots[absorber].amount, remainder)
        return remainder

    floors = [max(m, Decimal(0)) for m in minimums]
    unplaced = _trim_negative_remainder(assets, eligible, slots, floors, remainder, dmath)
    if dmath.is_negative(unplaced):
        # Every funded asset sits at its minimum; zero is the only hard floor left
        logger.warning(
            f"[CapitalDistributor] Rounding remainder {unplaced} trimmed below minimums"
        )
        zero_floors = [Decimal(0)] * len(slots)
        _trim_negative_remainder(assets, eligible, slots, zero_floors, unplaced, dmath)
    return remainder


# ---------------------------------------------------------------------------
# Public Entry Point
# ---------------------------------------------------------------------------

def distribute_capital(
    sorted_assets: Sequence[AssetWithPriority],
    total_investable: Union[Decimal, str],
    min_allocations: Optional[Mapping[str, Decimal]] = None,
    dmath: Optional[DecimalMath] = None,
) -> list[DistributionResult]:
    """
    Distribute capital among assets already sorted by priority (descending).

    Steps:
    1. Over-allocated assets are fixed at 0 and never receive funds.
    2. Eligible assets get total x priority / sum(positive priorities);
       priority <= 0 gets 0. With no positive priority, equal split.
    3. Amounts below their minimum are pooled and granted to the first
       eligible asset that is funded or whose minimum fits the pool,
       else force-granted to the highest-priority eligible asset.
    4. Amounts are reconciled at full precision, then rounded. A rounding
       surplus goes to the first funded eligible asset; a shortfall is
       trimmed in priority order without taking any asset below
       max(minimum, 0). The sum equals the rounded total.

    Args:
        sorted_assets: Assets in priority order (see sort_by_priority).
        total_investable: Capital to distribute.
        min_allocations: asset_id → minimum amount. Defaults to each
            asset's own min_allocation_value.
        dmath: Decimal arithmetic to use; a default-config one otherwise.

    Returns:
        One DistributionResult per input asset, in input order.
    """
    dmath = dmath or DecimalMath()
    total = dmath.parse(total_investable)

    if min_allocations is None:
        min_allocations = {a.id: a.minimum for a in sorted_assets}

    slots = [_Slot(Decimal(0), Decimal(0)) for _ in sorted_assets]
    eligible = [i for i, a in enumerate(sorted_assets) if not a.is_over_allocated]

    if not sorted_assets or not dmath.is_positive(total):
        logger.info(
            f"[CapitalDistributor] Nothing to distribute "
            f"({len(sorted_assets)} assets, total={total})"
        )
    elif not eligible:
        logger.info(
            f"[CapitalDistributor] All {len(sorted_assets)} assets over-allocated, "
            f"nothing distributed"
        )
    else:
        minimums = [
            min_allocations.get(a.id) or Decimal(0)
            for a in sorted_assets
        ]
        # Monetary places stay significant however large the total
        work = dmath.widened(max(total.adjusted() + 1, 1) + dmath.config.monetary_places + 2)
        _initial_allocation(sorted_assets, eligible, slots, total, work)
        iterations = _enforce_minimums(sorted_assets, eligible, slots, minimums, work)
        difference = _reconcile(sorted_assets, eligible, slots, minimums, total, work)

        funded = sum(1 for s in slots if dmath.is_positive(s.amount))
        logger.info(
            f"[CapitalDistributor] Distributed {dmath.to_fixed(total)} to {funded}/"
            f"{len(eligible)} eligible assets ({len(sorted_assets) - len(eligible)} "
            f"over-allocated), {iterations} passes, residual {difference}"
        )

    return [
        DistributionResult(
            asset_id=asset.id,
            amount=slot.amount,
            redistributed_from=slot.redistributed_from,
        )
        for asset, slot in zip(sorted_assets, slots)
    ]
