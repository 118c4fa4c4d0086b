"""
Shared test fixtures for Rebalance Engine tests.
Provides sample asset snapshots, model builders and file helpers.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Optional

import pandas as pd

from rebalance_engine.schemas.recommendation_output import (
    AssetContext,
    AssetWithPriority,
    RecommendationBreakdown,
    RecommendationItem,
)

FIXTURES_DIR = Path(__file__).parent


# Sample portfolio snapshot: a mixed Brazilian/US portfolio with one
# over-allocated ETF and one asset carrying a minimum allocation.
SAMPLE_ASSETS = [
    {"id": "a-itub", "symbol": "ITUB4", "class_id": "c-br", "class_name": "Brazil Equities",
     "subclass_id": "s-banks", "subclass_name": "Banks",
     "current_allocation": "12.5000", "target_allocation": "20.0000", "allocation_gap": "7.5000",
     "score": "82.0000", "current_value": "12500.0000", "min_allocation_value": None,
     "is_over_allocated": False},
    {"id": "a-bbdc", "symbol": "BBDC4", "class_id": "c-br", "class_name": "Brazil Equities",
     "subclass_id": "s-banks", "subclass_name": "Banks",
     "current_allocation": "10.0000", "target_allocation": "20.0000", "allocation_gap": "10.0000",
     "score": "55.0000", "current_value": "10000.0000", "min_allocation_value": None,
     "is_over_allocated": False},
    {"id": "a-vti", "symbol": "VTI", "class_id": "c-us", "class_name": "US ETFs",
     "subclass_id": None, "subclass_name": None,
     "current_allocation": "45.0000", "target_allocation": "35.0000", "allocation_gap": "-10.0000",
     "score": "90.0000", "current_value": "45000.0000", "min_allocation_value": None,
     "is_over_allocated": True},
    {"id": "a-hglg", "symbol": "HGLG11", "class_id": "c-reit", "class_name": "REITs",
     "subclass_id": "s-log", "subclass_name": "Logistics",
     "current_allocation": "2.5000", "target_allocation": "10.0000", "allocation_gap": "7.5000",
     "score": "20.0000", "current_value": "2500.0000", "min_allocation_value": "300.0000",
     "is_over_allocated": False},
    {"id": "a-bnd", "symbol": "BND", "class_id": "c-fi", "class_name": "Fixed Income",
     "subclass_id": None, "subclass_name": None,
     "current_allocation": "30.0000", "target_allocation": "15.0000", "allocation_gap": "-15.0000",
     "score": "60.0000", "current_value": "30000.0000", "min_allocation_value": None,
     "is_over_allocated": False},
]


def make_asset(
    symbol: str,
    gap: str = "0",
    score: str = "50",
    asset_id: Optional[str] = None,
    min_allocation: Optional[str] = None,
    over_allocated: bool = False,
    current: str = "10",
    class_name: Optional[str] = None,
    current_value: str = "1000",
) -> AssetContext:
    """Build a minimal valid AssetContext for testing."""
    gap_dec = Decimal(gap)
    return AssetContext(
        id=asset_id or symbol.lower(),
        symbol=symbol,
        class_id=f"c-{class_name.lower()}" if class_name else None,
        class_name=class_name,
        current_allocation=current,
        target_allocation=str(Decimal(current) + gap_dec),
        allocation_gap=gap,
        score=score,
        current_value=current_value,
        min_allocation_value=min_allocation,
        is_over_allocated=over_allocated,
    )


def make_prioritized(
    symbol: str,
    priority: str,
    min_allocation: Optional[str] = None,
    over_allocated: bool = False,
) -> AssetWithPriority:
    """Build an AssetWithPriority with an explicit priority for distributor tests."""
    return AssetWithPriority(
        id=symbol.lower(),
        symbol=symbol,
        current_allocation="0",
        target_allocation="0",
        allocation_gap="0",
        score="0",
        min_allocation_value=min_allocation,
        is_over_allocated=over_allocated,
        priority=Decimal(priority),
    )


def make_item(
    asset_id: str,
    amount: str,
    over_allocated: bool = False,
    sort_order: int = 0,
    redistributed_from: Optional[str] = None,
) -> RecommendationItem:
    """Build a RecommendationItem directly, bypassing the engine."""
    return RecommendationItem(
        asset_id=asset_id,
        symbol=asset_id.upper(),
        score="50.0000",
        current_allocation="10.0000",
        target_allocation="12.0000",
        allocation_gap="2.0000",
        recommended_amount=amount,
        is_over_allocated=over_allocated,
        breakdown=RecommendationBreakdown(
            current_value="1000.0000",
            target_midpoint="12.0000",
            priority="1.0000",
            redistributed_from=redistributed_from,
        ),
        sort_order=sort_order,
    )


def sample_assets() -> list[AssetContext]:
    return [AssetContext(**a) for a in SAMPLE_ASSETS]


_FILE_COLUMN_MAP = {
    "id": "Asset ID",
    "symbol": "Symbol",
    "class_name": "Class",
    "subclass_name": "Subclass",
    "current_allocation": "Current %",
    "target_allocation": "Target %",
    "allocation_gap": "Gap",
    "score": "Score",
    "current_value": "Value",
    "min_allocation_value": "Min Allocation",
    "is_over_allocated": "Over Allocated",
}


def create_asset_csv(filepath: Path, assets: list[dict]) -> Path:
    """Write asset dicts as a CSV with human-style headers."""
    df = pd.DataFrame(assets)
    df = df.rename(columns={k: v for k, v in _FILE_COLUMN_MAP.items() if k in df.columns})
    df.to_csv(filepath, index=False)
    return filepath


def create_asset_xlsx(filepath: Path, assets: list[dict]) -> Path:
    """Write asset dicts as an XLSX with human-style headers."""
    df = pd.DataFrame(assets)
    df = df.rename(columns={k: v for k, v in _FILE_COLUMN_MAP.items() if k in df.columns})
    df.to_excel(filepath, index=False, engine="openpyxl")
    return filepath

