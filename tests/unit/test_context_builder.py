"""
Tests for Context Builder — investable total and AssetContext derivation
from holdings and target ranges.
"""

from decimal import Decimal

import pytest

from rebalance_engine.exceptions import InvalidDecimalError, NegativeAmountError
from rebalance_engine.tools.context_builder import (
    Holding,
    TargetRange,
    build_asset_context,
    build_asset_contexts,
    compute_total_investable,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _range(name: str, low: str = None, high: str = None, minimum: str = None) -> TargetRange:
    return TargetRange(
        id=name.lower(), name=name,
        target_min=low, target_max=high, min_allocation_value=minimum,
    )


def _holding(symbol: str, value: str, **kwargs) -> Holding:
    return Holding(id=f"h-{symbol.lower()}", symbol=symbol, value=value, **kwargs)


# ---------------------------------------------------------------------------
# Test: compute_total_investable
# ---------------------------------------------------------------------------

class TestComputeTotalInvestable:

    @pytest.mark.behavior
    def test_contribution_plus_dividends(self):
        assert compute_total_investable("1000", "250.5") == "1250.5000"

    @pytest.mark.behavior
    @pytest.mark.parametrize("dividends", [None, "", "  "])
    def test_missing_dividends_count_as_zero(self, dividends):
        assert compute_total_investable("1000", dividends) == "1000.0000"

    @pytest.mark.behavior
    def test_decimal_inputs(self):
        assert compute_total_investable(Decimal("0.1"), Decimal("0.2")) == "0.3000"

    @pytest.mark.behavior
    def test_negative_contribution(self):
        with pytest.raises(NegativeAmountError, match="Contribution"):
            compute_total_investable("-1")

    @pytest.mark.behavior
    def test_negative_dividends(self):
        with pytest.raises(NegativeAmountError, match="Dividends"):
            compute_total_investable("100", "-5")

    @pytest.mark.behavior
    def test_malformed(self):
        with pytest.raises(InvalidDecimalError):
            compute_total_investable("ten")


# ---------------------------------------------------------------------------
# Test: build_asset_context
# ---------------------------------------------------------------------------

class TestBuildAssetContext:

    @pytest.mark.behavior
    def test_class_range_midpoint(self):
        holding = _holding("ITUB4", "2500", score="82", asset_class=_range("Equities", "20", "30"))
        ctx = build_asset_context(holding, "10000")
        assert ctx.current_allocation == Decimal(25)
        assert ctx.target_allocation == Decimal(25)
        assert ctx.allocation_gap == Decimal(0)
        assert ctx.is_over_allocated is False
        assert ctx.class_name == "Equities"
        assert ctx.score == Decimal(82)

    @pytest.mark.behavior
    def test_subclass_range_wins(self):
        holding = _holding(
            "ITUB4", "2500",
            asset_class=_range("Equities", "20", "30"),
            subclass=_range("Banks", "10", "20", minimum="500"),
        )
        ctx = build_asset_context(holding, "10000")
        assert ctx.target_allocation == Decimal(15)
        assert ctx.allocation_gap == Decimal(-10)
        assert ctx.is_over_allocated is True
        assert ctx.subclass_name == "Banks"
        assert ctx.min_allocation_value == Decimal(500)

    @pytest.mark.behavior
    def test_default_range_without_targets(self):
        ctx = build_asset_context(_holding("VTI", "2500"), "10000")
        assert ctx.target_allocation == Decimal(50)
        assert ctx.allocation_gap == Decimal(25)
        assert ctx.is_over_allocated is False
        assert ctx.class_id is None

    @pytest.mark.behavior
    def test_incomplete_range_ignored(self):
        holding = _holding("VTI", "2500", asset_class=_range("US", "20", None))
        ctx = build_asset_context(holding, "10000")
        assert ctx.target_allocation == Decimal(50)
        assert ctx.class_name == "US"

    @pytest.mark.behavior
    def test_unscored_asset_gets_default_score(self):
        ctx = build_asset_context(_holding("BND", "100"), "1000")
        assert ctx.score == Decimal(50)

    @pytest.mark.behavior
    def test_empty_portfolio_has_zero_allocation(self):
        ctx = build_asset_context(_holding("BND", "0"), "0")
        assert ctx.current_allocation == Decimal(0)

    @pytest.mark.behavior
    def test_at_max_is_not_over_allocated(self):
        holding = _holding("AAA", "3000", asset_class=_range("Eq", "20", "30"))
        assert build_asset_context(holding, "10000").is_over_allocated is False


# ---------------------------------------------------------------------------
# Test: build_asset_contexts
# ---------------------------------------------------------------------------

class TestBuildAssetContexts:

    @pytest.mark.behavior
    def test_ignored_holdings_excluded(self):
        holdings = [
            _holding("AAA", "3000"),
            _holding("BBB", "1000"),
            _holding("CCC", "6000", is_ignored=True),
        ]
        contexts = build_asset_contexts(holdings)
        assert [c.symbol for c in contexts] == ["AAA", "BBB"]
        assert contexts[0].current_allocation == Decimal(75)
        assert contexts[1].current_allocation == Decimal(25)

    @pytest.mark.behavior
    def test_empty(self):
        assert build_asset_contexts([]) == []
